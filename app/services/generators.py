# app/services/generators.py

import random
from typing import NamedTuple, Optional

# 見間違えやすい 0 / 1 / I / O を除いた 32 文字
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6


class WordPair(NamedTuple):
    normal_word: str
    mafia_word: str


WORD_PAIRS: tuple[WordPair, ...] = (
    WordPair("Apple", "Orange"),
    WordPair("Dog", "Cat"),
    WordPair("Beach", "Mountain"),
    WordPair("Summer", "Winter"),
    WordPair("Coffee", "Tea"),
    WordPair("Pizza", "Burger"),
    WordPair("Soccer", "Basketball"),
    WordPair("Movie", "Book"),
    WordPair("Guitar", "Piano"),
    WordPair("Car", "Bicycle"),
    WordPair("Morning", "Evening"),
    WordPair("Sun", "Moon"),
    WordPair("River", "Lake"),
    WordPair("Forest", "Desert"),
    WordPair("Pencil", "Pen"),
    WordPair("Shirt", "Pants"),
    WordPair("Happy", "Sad"),
    WordPair("Fast", "Slow"),
    WordPair("Hot", "Cold"),
    WordPair("Sweet", "Sour"),
)


def generate_game_code(rng: Optional[random.Random] = None) -> str:
    """
    6文字のゲームコードを返す。
    各文字は CODE_ALPHABET から独立に一様ランダム。既存コードとの重複は見ない。
    """
    rng = rng or random
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def generate_word_pair(rng: Optional[random.Random] = None) -> WordPair:
    rng = rng or random
    return rng.choice(WORD_PAIRS)
