# app/models/game.py
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    ForeignKey,
    DateTime,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from ..db import Base


class Game(Base):
    __tablename__ = "games"

    # 6文字のゲームコードがそのまま主キー
    code = Column(String(6), primary_key=True)

    host = Column(String, nullable=False)             # 表示用（作成者の名前）
    host_player_id = Column(Integer, nullable=False)  # ★ 司会判定はこちらで行う

    player_count = Column(Integer, nullable=False)
    mafia_count = Column(Integer, nullable=False)

    normal_word = Column(String, nullable=False)
    mafia_word = Column(String, nullable=False)

    status = Column(String, nullable=False, default="lobby")  # 'lobby','playing','ended'

    voting_complete = Column(Boolean, nullable=False, default=False)
    mafia_revealed = Column(Boolean, nullable=False, default=False)

    # 次に払い出すプレイヤーID（再利用しない）
    next_player_id = Column(Integer, nullable=False, default=1)

    # 楽観ロック用。書き込みごとに +1
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    players = relationship(
        "GamePlayer",
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="GamePlayer.order_no",
    )
    votes = relationship("GameVote", back_populates="game", cascade="all, delete-orphan")


class GamePlayer(Base):
    __tablename__ = "game_players"

    id = Column(String, primary_key=True)
    game_code = Column(String(6), ForeignKey("games.code"), nullable=False, index=True)

    player_id = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    is_mafia = Column(Boolean, nullable=False, default=False)
    order_no = Column(Integer, nullable=False, default=0)

    game = relationship("Game", back_populates="players")

    __table_args__ = (
        UniqueConstraint("game_code", "player_id", name="uq_game_player_id"),
    )


class GameVote(Base):
    __tablename__ = "game_votes"

    id = Column(String, primary_key=True)
    game_code = Column(String(6), ForeignKey("games.code"), nullable=False, index=True)

    voter_player_id = Column(Integer, nullable=False)
    target_player_id = Column(Integer, nullable=False)

    game = relationship("Game", back_populates="votes")

    # 1人1票（再投票は上書き）
    __table_args__ = (
        UniqueConstraint("game_code", "voter_player_id", name="uq_game_vote_once"),
    )
