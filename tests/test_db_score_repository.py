"""Tests for DBScoreRepository against in-memory SQLite."""
from __future__ import annotations

import unittest
from dataclasses import replace
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine, select

from decision_game.db.repositories import DBScoreRepository
from decision_game.db.tables import ScoreRow
from decision_game.entities.score import GameMode, ScoreCandidate, ScoreRecord, UpsertOutcome
from decision_game.errors import RepositoryError
from decision_game.services.ranking import ScoreRanking


def _make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ScoreRow.metadata.create_all(engine, tables=[ScoreRow.__table__])
    return engine


def _candidate(correct=8, total_questions=10, total_time_ms=5000, avg_time_ms=500, initials="ALI", mode=GameMode.SHORT):
    return ScoreCandidate(
        initials=initials, mode=mode, correct=correct, total_questions=total_questions,
        total_time_ms=total_time_ms, avg_time_ms=avg_time_ms,
    )


class TestDBScoreRepository(unittest.TestCase):
    def setUp(self):
        self.engine = _make_engine()
        self.session = Session(self.engine)
        self.repo = DBScoreRepository(self.session)
        self.ranking = ScoreRanking()

    def tearDown(self):
        self.session.close()

    def test_insert_assigns_id_and_persists_mistakes(self):
        record = self.repo.insert(_candidate(correct=7).to_record())

        self.assertTrue(record.id.startswith("SCR_"))
        row = self.session.exec(select(ScoreRow)).one()
        self.assertEqual(row.mistakes, 3)
        self.assertEqual(row.mode, "short")

    def test_find_filters_and_limits(self):
        self.repo.insert(_candidate(initials="AAA").to_record())
        self.repo.insert(_candidate(initials="BBB").to_record())
        self.repo.insert(_candidate(initials="AAA", mode=GameMode.LONG).to_record())

        self.assertEqual([r.initials for r in self.repo.find(mode=GameMode.SHORT)], ["AAA", "BBB"])
        self.assertEqual(len(self.repo.find(initials="AAA")), 2)
        self.assertEqual(len(self.repo.find(mode=GameMode.SHORT, limit=1)), 1)
        found = self.repo.find(initials="AAA", mode=GameMode.LONG)
        self.assertEqual(found[0].mode, GameMode.LONG)

    def test_update_by_identity(self):
        record = self.repo.insert(_candidate().to_record())
        record.apply(_candidate(correct=10))
        self.repo.update(record)

        stored = self.repo.find(initials="ALI")[0]
        self.assertEqual(stored.correct, 10)
        self.assertEqual(stored.mistakes, 0)
        self.assertEqual(stored.version, 2)

    def test_update_unknown_record_fails(self):
        with self.assertRaises(RepositoryError):
            self.repo.update(ScoreRecord(id="SCR_missing", **vars(_candidate())))

    def test_unique_pair_enforced(self):
        self.repo.insert(_candidate().to_record())
        with self.assertRaises(RepositoryError):
            self.repo.insert(_candidate(correct=9).to_record())
        # session is still usable after the failed insert
        self.assertEqual(len(self.repo.find(initials="ALI")), 1)

    def test_upsert_inserts_then_keeps_best(self):
        self.assertEqual(self.repo.upsert_if_better(_candidate(), self.ranking), UpsertOutcome.INSERTED)
        self.assertEqual(self.repo.upsert_if_better(_candidate(correct=7), self.ranking), UpsertOutcome.UNCHANGED)
        self.assertEqual(self.repo.upsert_if_better(_candidate(), self.ranking), UpsertOutcome.UNCHANGED)
        self.assertEqual(
            self.repo.upsert_if_better(_candidate(correct=9, total_time_ms=6000, avg_time_ms=600), self.ranking),
            UpsertOutcome.UPDATED,
        )

        stored = self.repo.find(initials="ALI", mode=GameMode.SHORT)
        self.assertEqual(len(stored), 1)
        self.assertEqual((stored[0].correct, stored[0].total_time_ms, stored[0].version), (9, 6000, 2))

    def test_stale_version_does_not_overwrite(self):
        stale = self.repo.insert(_candidate().to_record())
        self.repo.upsert_if_better(_candidate(correct=10), self.ranking)   # now v2

        stale_copy = replace(stale)
        stale_copy.apply(_candidate(correct=9))
        self.assertFalse(self.repo._compare_and_swap(stale_copy, expected_version=1))
        self.assertEqual(self.repo.find(initials="ALI")[0].correct, 10)

    def test_lost_update_race_rereads_and_compares(self):
        self.repo.insert(_candidate().to_record())
        stale = self.repo.find(initials="ALI", mode=GameMode.SHORT)

        # a concurrent writer stores 10/10 after we read the 8/10 record
        DBScoreRepository(self.session).upsert_if_better(_candidate(correct=10), self.ranking)

        real_find = self.repo.find
        calls = []

        def find_stale_first(**kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                return [replace(r) for r in stale]
            return real_find(**kwargs)

        self.repo.find = find_stale_first
        outcome = self.repo.upsert_if_better(_candidate(correct=9), self.ranking)

        self.assertEqual(outcome, UpsertOutcome.UNCHANGED)
        self.assertEqual(len(calls), 2)
        stored = real_find(initials="ALI", mode=GameMode.SHORT)
        self.assertEqual((stored[0].correct, stored[0].version), (10, 2))

    def test_insert_race_falls_back_to_compare(self):
        self.repo.insert(_candidate().to_record())
        real_find = self.repo.find
        calls = []

        def find_nothing_first(**kwargs):
            calls.append(kwargs)
            return [] if len(calls) == 1 else real_find(**kwargs)

        self.repo.find = find_nothing_first
        outcome = self.repo.upsert_if_better(_candidate(correct=9), self.ranking)

        self.assertEqual(outcome, UpsertOutcome.UPDATED)
        stored = real_find(initials="ALI", mode=GameMode.SHORT)
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].correct, 9)

    def test_gives_up_after_max_attempts(self):
        repo = DBScoreRepository(self.session, max_attempts=2)
        repo.insert(_candidate().to_record())
        repo.find = lambda **kwargs: []

        with self.assertRaises(RepositoryError):
            repo.upsert_if_better(_candidate(correct=9), self.ranking)

    def test_store_failures_become_repository_errors(self):
        session = MagicMock()
        session.exec.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        repo = DBScoreRepository(session)

        with self.assertRaises(RepositoryError) as ctx:
            repo.find(mode=GameMode.SHORT)

        self.assertIn("connection refused", ctx.exception.message)
        session.rollback.assert_called_once()


if __name__ == "__main__":
    unittest.main()
