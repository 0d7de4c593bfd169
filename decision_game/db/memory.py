from __future__ import annotations

from dataclasses import replace

from decision_game.db.repositories import new_score_id
from decision_game.entities.score import GameMode, ScoreRecord
from decision_game.errors import RepositoryError
from decision_game.services.interfaces.score_repository import ScoreRepository


class InMemoryScoreRepository(ScoreRepository):
    """Process-local score store. Uses the plain read-compare-write upsert,
    so it is only safe with one writer at a time."""

    def __init__(self, records: list[ScoreRecord] | None = None):
        # In-memory storage, insertion order doubles as creation order
        self._storage: dict[str, ScoreRecord] = {}
        for record in records or []:
            self.insert(record)

    def find(
        self,
        *,
        initials: str | None = None,
        mode: GameMode | None = None,
        limit: int | None = None,
    ) -> list[ScoreRecord]:
        results = [
            replace(record)
            for record in self._storage.values()
            if (initials is None or record.initials == initials)
            and (mode is None or record.mode == mode)
        ]
        if limit is not None:
            results = results[:limit]
        return results

    def insert(self, record: ScoreRecord) -> ScoreRecord:
        if record.id is None:
            record.id = new_score_id()
        self._storage[record.id] = replace(record)
        return record

    def update(self, record: ScoreRecord) -> ScoreRecord:
        if record.id not in self._storage:
            raise RepositoryError(f"score {record.id} does not exist")
        self._storage[record.id] = replace(record)
        return record

    def clear(self):
        """Drop all scores (only for testing)."""
        self._storage.clear()
