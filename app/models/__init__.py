from .game import Game, GamePlayer, GameVote

__all__ = [
    "Game",
    "GamePlayer",
    "GameVote",
]
