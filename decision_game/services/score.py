"""Score service: validate a run → keep the best per (initials, mode) → rank the leaderboard."""
from __future__ import annotations

import logging
from typing import Any

import pydantic

from decision_game.config.runtime import UNKNOWN_MODE_DEFAULT, RuntimeSettings
from decision_game.entities.score import (
    GameMode, Leaderboard, LeaderboardEntry, ScoreCandidate, UpsertOutcome, normalize_initials,
)
from decision_game.errors import ValidationError
from decision_game.schemas import SaveScoreEnvelope, describe_validation_error, parse_mode
from decision_game.services.interfaces.score_repository import ScoreRepository
from decision_game.services.ranking import ScoreRanking


class ScoreService:
    def __init__(
        self,
        score_repository: ScoreRepository,
        settings: RuntimeSettings | None = None,
        ranking: ScoreRanking | None = None,
    ):
        self.score_repository = score_repository
        self.settings = settings or RuntimeSettings()
        self.ranking = ranking or ScoreRanking()
        self.logger = logging.getLogger(__name__)

    def build_candidate(self, payload: Any) -> ScoreCandidate:
        try:
            envelope = SaveScoreEnvelope.model_validate(
                payload, context={"allowed_modes": self.settings.allowed_modes},
            )
        except pydantic.ValidationError as exc:
            message, field = describe_validation_error(exc)
            raise ValidationError(message, field=field) from exc

        initials = normalize_initials(envelope.initials, self.settings.initials_length)
        if not initials:
            raise ValidationError("Initials are required", field="initials")

        return ScoreCandidate(
            initials=initials,
            mode=envelope.mode,
            correct=envelope.correct,
            total_questions=envelope.total_questions,
            total_time_ms=envelope.total_time_ms,
            avg_time_ms=envelope.avg_time_ms,
        )

    def submit_score(self, payload: Any) -> UpsertOutcome:
        """Store the run if it is the first or the best for its (initials, mode).

        At most one repository write per call; invalid payloads never reach
        the repository.
        """
        candidate = self.build_candidate(payload)
        outcome = self.score_repository.upsert_if_better(candidate, self.ranking)
        self.logger.info(
            "score submitted initials=%s mode=%s mistakes=%d outcome=%s",
            candidate.initials, candidate.mode, candidate.mistakes, outcome,
        )
        return outcome

    def resolve_mode(self, raw: Any) -> GameMode:
        mode = parse_mode(raw, self.settings.allowed_modes)
        if mode is not None:
            return mode
        if self.settings.unknown_mode_policy == UNKNOWN_MODE_DEFAULT:
            self.logger.debug("unknown mode %r, falling back to %s", raw, self.settings.default_mode)
            return self.settings.default_mode

        allowed = ", ".join(f'"{m}"' for m in self.settings.allowed_modes)
        raise ValidationError(f"mode query param must be one of {allowed}", field="mode")

    def get_leaderboard(self, raw_mode: Any) -> Leaderboard:
        mode = self.resolve_mode(raw_mode)
        fetch_limit = self.settings.leaderboard_fetch_limit

        records = self.score_repository.find(mode=mode, limit=fetch_limit)
        if len(records) >= fetch_limit:
            self.logger.warning(
                "leaderboard mode=%s hit the fetch limit of %d records, ranking may be incomplete",
                mode, fetch_limit,
            )

        ranked = self.ranking.sort(records, mode)[: self.settings.leaderboard_size]
        return Leaderboard(
            mode=mode,
            entries=[LeaderboardEntry(rank=idx, record=record) for idx, record in enumerate(ranked, start=1)],
        )
