from __future__ import annotations

from abc import ABC, abstractmethod

from decision_game.entities.score import GameMode, ScoreCandidate, ScoreRecord, UpsertOutcome
from decision_game.services.ranking import ScoreRanking


class ScoreRepository(ABC):
    @abstractmethod
    def find(
        self,
        *,
        initials: str | None = None,
        mode: GameMode | None = None,
        limit: int | None = None,
    ) -> list[ScoreRecord]:
        """Equality-filtered lookup, oldest record first."""
        raise NotImplementedError

    @abstractmethod
    def insert(self, record: ScoreRecord) -> ScoreRecord:
        raise NotImplementedError

    @abstractmethod
    def update(self, record: ScoreRecord) -> ScoreRecord:
        """Overwrite the stored record sharing ``record.id``."""
        raise NotImplementedError

    def upsert_if_better(self, candidate: ScoreCandidate, ranking: ScoreRanking) -> UpsertOutcome:
        """Keep only the best record per (initials, mode).

        Plain read-compare-write: two concurrent calls for the same pair can
        both read the same current record and the later write wins. Stores
        that can do conditional updates override this.
        """
        existing = self.find(initials=candidate.initials, mode=candidate.mode)
        if not existing:
            self.insert(candidate.to_record())
            return UpsertOutcome.INSERTED

        # duplicates for one pair are tolerated; the oldest is the current best
        current = existing[0]
        if not ranking.is_better(candidate, current):
            return UpsertOutcome.UNCHANGED

        current.apply(candidate)
        self.update(current)
        return UpsertOutcome.UPDATED
