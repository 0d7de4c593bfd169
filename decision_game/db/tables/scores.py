"""Best-score table: one row per (initials, mode)."""
from __future__ import annotations

import os
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


SCORES_TABLE = os.getenv("SCORES_TABLE", "decision_game_scores")


class ScoreRow(SQLModel, table=True):
    __tablename__ = SCORES_TABLE
    __table_args__ = (UniqueConstraint("initials", "mode", name=f"uq_{SCORES_TABLE}_initials_mode"),)

    id: str = Field(primary_key=True)
    initials: str = Field(index=True)
    mode: str = Field(index=True)

    correct: int
    total_questions: int
    total_time_ms: float
    avg_time_ms: float
    # cache for operators only, recomputed on every write and never read back
    mistakes: int

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime | None = None
