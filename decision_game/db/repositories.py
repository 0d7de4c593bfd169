from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from decision_game.db.tables import ScoreRow
from decision_game.entities.score import GameMode, ScoreCandidate, ScoreRecord, UpsertOutcome
from decision_game.errors import RepositoryError
from decision_game.services.interfaces.score_repository import ScoreRepository
from decision_game.services.ranking import ScoreRanking

logger = logging.getLogger(__name__)


def new_score_id() -> str:
    return f"SCR_{uuid.uuid4().hex}"


class DBScoreRepository(ScoreRepository):
    """SQL score store with compare-and-swap updates on ``version``.

    A unique (initials, mode) constraint catches racing first inserts; a
    stale ``version`` catches racing updates. Either way the loser re-reads
    and compares against the winner.
    """

    def __init__(self, session: Session, max_attempts: int = 3):
        self._session = session
        self._max_attempts = max(1, max_attempts)

    def rollback(self) -> None:
        self._session.rollback()

    @contextmanager
    def _store_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RepositoryError(f"score store {action} failed: {exc}") from exc

    def find(
        self,
        *,
        initials: str | None = None,
        mode: GameMode | None = None,
        limit: int | None = None,
    ) -> list[ScoreRecord]:
        query = select(ScoreRow)
        if initials is not None:
            query = query.where(ScoreRow.initials == initials)
        if mode is not None:
            query = query.where(ScoreRow.mode == str(mode))
        query = query.order_by(ScoreRow.created_at.asc(), ScoreRow.id.asc())
        if limit is not None:
            query = query.limit(limit)

        with self._store_errors("find"):
            rows = self._session.exec(query).all()
        return [self._row_to_domain(row) for row in rows]

    def insert(self, record: ScoreRecord) -> ScoreRecord:
        with self._store_errors("insert"):
            self._add(record)
        return record

    def update(self, record: ScoreRecord) -> ScoreRecord:
        with self._store_errors("update"):
            existing = self._session.get(ScoreRow, record.id)
            if existing is None:
                raise RepositoryError(f"score {record.id} does not exist")

            row = self._domain_to_row(record)
            existing.initials = row.initials
            existing.mode = row.mode
            existing.correct = row.correct
            existing.total_questions = row.total_questions
            existing.total_time_ms = row.total_time_ms
            existing.avg_time_ms = row.avg_time_ms
            existing.mistakes = row.mistakes
            existing.version = row.version
            existing.created_at = row.created_at
            existing.updated_at = row.updated_at
            self._session.commit()
        return record

    def upsert_if_better(self, candidate: ScoreCandidate, ranking: ScoreRanking) -> UpsertOutcome:
        with self._store_errors("upsert"):
            for attempt in range(1, self._max_attempts + 1):
                existing = self.find(initials=candidate.initials, mode=candidate.mode)

                if not existing:
                    try:
                        self._add(candidate.to_record())
                        return UpsertOutcome.INSERTED
                    except IntegrityError:
                        self._session.rollback()
                        logger.info(
                            "insert race on initials=%s mode=%s (attempt %d), re-reading",
                            candidate.initials, candidate.mode, attempt,
                        )
                        continue

                current = existing[0]
                if not ranking.is_better(candidate, current):
                    return UpsertOutcome.UNCHANGED

                expected_version = current.version
                current.apply(candidate)
                if self._compare_and_swap(current, expected_version):
                    return UpsertOutcome.UPDATED

                logger.info(
                    "version conflict on score %s (expected v%d, attempt %d), re-reading",
                    current.id, expected_version, attempt,
                )

        raise RepositoryError(
            f"gave up storing score for initials={candidate.initials} mode={candidate.mode} "
            f"after {self._max_attempts} concurrent-update conflicts"
        )

    def _add(self, record: ScoreRecord) -> None:
        if record.id is None:
            record.id = new_score_id()
        self._session.add(self._domain_to_row(record))
        self._session.commit()

    def _compare_and_swap(self, record: ScoreRecord, expected_version: int) -> bool:
        result = self._session.exec(
            update(ScoreRow)
            .where(ScoreRow.id == record.id, ScoreRow.version == expected_version)
            .values(
                correct=record.correct,
                total_questions=record.total_questions,
                total_time_ms=record.total_time_ms,
                avg_time_ms=record.avg_time_ms,
                mistakes=record.mistakes,
                version=record.version,
                updated_at=record.updated_at,
            )
        )
        self._session.commit()
        return result.rowcount == 1

    @staticmethod
    def _row_to_domain(row: ScoreRow) -> ScoreRecord:
        return ScoreRecord(
            id=row.id,
            initials=row.initials,
            mode=GameMode(row.mode),
            correct=row.correct,
            total_questions=row.total_questions,
            total_time_ms=row.total_time_ms,
            avg_time_ms=row.avg_time_ms,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _domain_to_row(record: ScoreRecord) -> ScoreRow:
        return ScoreRow(
            id=record.id,
            initials=record.initials,
            mode=str(record.mode),
            correct=record.correct,
            total_questions=record.total_questions,
            total_time_ms=record.total_time_ms,
            avg_time_ms=record.avg_time_ms,
            mistakes=record.mistakes,
            version=record.version,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
