from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

DEFAULT_INITIALS_LENGTH = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GameMode(StrEnum):
    SHORT = "short"
    LONG = "long"
    INFINITE = "infinite"


class UpsertOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def normalize_initials(raw: str, length: int = DEFAULT_INITIALS_LENGTH) -> str:
    """Player key within a mode: uppercase, truncated to ``length`` characters."""
    return raw.strip().upper()[:length]


@dataclass
class ScoreCandidate:
    """A submitted run. Only kept if it becomes (or beats) the stored best."""
    initials: str
    mode: GameMode
    correct: int
    total_questions: int
    total_time_ms: float
    avg_time_ms: float

    @property
    def mistakes(self) -> int:
        return self.total_questions - self.correct

    def to_record(self) -> ScoreRecord:
        now = utc_now()
        return ScoreRecord(
            initials=self.initials,
            mode=self.mode,
            correct=self.correct,
            total_questions=self.total_questions,
            total_time_ms=self.total_time_ms,
            avg_time_ms=self.avg_time_ms,
            created_at=now,
            updated_at=now,
        )


@dataclass
class ScoreRecord:
    """Best run stored for one (initials, mode) pair."""
    initials: str
    mode: GameMode
    correct: int
    total_questions: int
    total_time_ms: float
    avg_time_ms: float
    id: str | None = None
    version: int = 1                                             # bumped on every update
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    @property
    def mistakes(self) -> int:
        return self.total_questions - self.correct

    def apply(self, candidate: ScoreCandidate) -> None:
        self.correct = candidate.correct
        self.total_questions = candidate.total_questions
        self.total_time_ms = candidate.total_time_ms
        self.avg_time_ms = candidate.avg_time_ms
        self.updated_at = utc_now()
        self.version += 1

    def to_public(self) -> dict[str, Any]:
        return {
            "initials": self.initials,
            "correct": self.correct,
            "totalQuestions": self.total_questions,
            "totalTimeMs": self.total_time_ms,
            "avgTimeMs": self.avg_time_ms,
            "mistakes": self.mistakes,
        }


@dataclass
class LeaderboardEntry:
    rank: int
    record: ScoreRecord

    def to_public(self) -> dict[str, Any]:
        return {"rank": self.rank, **self.record.to_public()}


@dataclass
class Leaderboard:
    mode: GameMode
    entries: list[LeaderboardEntry] = field(default_factory=list)

    def to_public(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "results": [entry.to_public() for entry in self.entries],
        }
