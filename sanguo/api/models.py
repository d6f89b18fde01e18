"""
SQLAlchemy models for saved campaigns.
"""

from datetime import datetime
from sqlalchemy import Column, DateTime, Integer, String, Text

from .database import Base


class Game(Base):
    __tablename__ = "games"

    id = Column(String(64), primary_key=True)  # same as GameState.game_id
    scenario_id = Column(String(64), nullable=False)
    difficulty = Column(String(16), nullable=False)
    seed = Column(Integer, nullable=False)
    rng_draws = Column(Integer, nullable=False, default=0)  # values consumed so far from the seeded rng
    started_turn = Column(Integer, nullable=False, default=0)  # last turn whose budget was granted
    state_json = Column(Text, nullable=False)  # GameStateManager.serialize()
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
