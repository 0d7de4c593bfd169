from __future__ import annotations

from typing import Any

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic_core import PydanticCustomError

from decision_game.entities.score import GameMode

# older clients posted `questions`, `totalTime` and `avgReaction`
_WIRE_NAMES = {
    "initials": "initials",
    "mode": "mode",
    "correct": "correct",
    "totalQuestions": "totalQuestions",
    "questions": "totalQuestions",
    "totalTimeMs": "totalTimeMs",
    "totalTime": "totalTimeMs",
    "avgTimeMs": "avgTimeMs",
    "avgReaction": "avgTimeMs",
}


def parse_mode(raw: Any, allowed: tuple[GameMode, ...]) -> GameMode | None:
    """Case-insensitive mode lookup; None when missing or not allowed."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        mode = GameMode(raw.strip().lower())
    except ValueError:
        return None
    return mode if mode in allowed else None


class SaveScoreEnvelope(BaseModel):
    """Body of `POST /decisionGame/saveScore`.

    Strict: numbers must arrive as JSON numbers (no strings, booleans, NaN),
    and `mode` is checked against the `allowed_modes` validation context.
    """

    initials: str = Field(min_length=1)
    mode: GameMode
    correct: int = Field(ge=0)
    total_questions: int = Field(ge=0, validation_alias=AliasChoices("totalQuestions", "questions"))
    total_time_ms: float = Field(ge=0, validation_alias=AliasChoices("totalTimeMs", "totalTime"))
    avg_time_ms: float = Field(ge=0, validation_alias=AliasChoices("avgTimeMs", "avgReaction"))

    model_config = ConfigDict(strict=True, str_strip_whitespace=True, allow_inf_nan=False, extra="ignore")

    @field_validator("mode", mode="before")
    @classmethod
    def check_mode(cls, value: Any, info: ValidationInfo) -> GameMode:
        allowed = tuple((info.context or {}).get("allowed_modes", tuple(GameMode)))
        mode = parse_mode(value, allowed)
        if mode is None:
            raise PydanticCustomError("invalid_mode", "mode must be one of {allowed}", {"allowed": allowed})
        return mode

    @model_validator(mode="after")
    def check_counts(self) -> "SaveScoreEnvelope":
        if self.correct > self.total_questions:
            raise PydanticCustomError("correct_exceeds_total", "correct cannot exceed totalQuestions")
        return self


def describe_validation_error(exc: pydantic.ValidationError) -> tuple[str, str | None]:
    """Turn the first pydantic error into a client message and the wire field it names."""
    error = exc.errors()[0]
    loc = error.get("loc") or ()
    field = _WIRE_NAMES.get(str(loc[0])) if loc else None

    if error["type"] == "correct_exceeds_total":
        return "correct cannot exceed totalQuestions", "correct"
    if not loc:
        return "Request body must be a JSON object", None
    if field == "initials":
        return "Initials are required", field
    if field == "mode":
        return "Invalid or missing mode", field
    if error["type"] == "greater_than_equal":
        return "Score fields must be non-negative", field
    return "Score fields must be numbers", field
