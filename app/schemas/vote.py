# app/schemas/vote.py

from pydantic import BaseModel

from .game import PlayerOut


class VoteCreate(BaseModel):
    voter_id: int
    target_id: int


class TallyItem(BaseModel):
    target_id: int
    vote_count: int


class TallyOut(BaseModel):
    code: str
    voted_count: int
    player_total: int
    voting_complete: bool
    items: list[TallyItem]
    # 最多得票者（同票なら全員）
    most_voted: list[PlayerOut]
