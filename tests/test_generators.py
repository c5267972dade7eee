# tests/test_generators.py

import random
from collections import Counter

from app.services.generators import (
    CODE_ALPHABET,
    CODE_LENGTH,
    WORD_PAIRS,
    generate_game_code,
    generate_word_pair,
)


def test_code_alphabet_excludes_ambiguous_characters():
    assert len(CODE_ALPHABET) == 32
    assert len(set(CODE_ALPHABET)) == 32
    for ch in "01IO":
        assert ch not in CODE_ALPHABET


def test_generate_game_code_shape():
    for _ in range(500):
        code = generate_game_code()
        assert len(code) == CODE_LENGTH == 6
        assert all(ch in CODE_ALPHABET for ch in code)


def test_generate_game_code_distribution_is_roughly_uniform():
    """
    1万回生成して文字の出現頻度をカイ二乗で確認する（厳密な検定ではない）。
    自由度31で p=0.0001 の境界がおよそ 70。
    """
    rng = random.Random(20240601)
    counts = Counter()
    for _ in range(10_000):
        counts.update(generate_game_code(rng))

    total = sum(counts.values())
    assert total == 60_000
    expected = total / len(CODE_ALPHABET)
    chi2 = sum((counts[ch] - expected) ** 2 / expected for ch in CODE_ALPHABET)
    assert chi2 < 70


def test_word_catalog_has_twenty_distinct_pairs():
    assert len(WORD_PAIRS) == 20
    assert len(set(WORD_PAIRS)) == 20
    for pair in WORD_PAIRS:
        assert pair.normal_word != pair.mafia_word


def test_generate_word_pair_comes_from_catalog():
    rng = random.Random(7)
    seen = {generate_word_pair(rng) for _ in range(500)}
    assert seen <= set(WORD_PAIRS)
    # 500回引けばほぼ全種類出る
    assert len(seen) >= 18
