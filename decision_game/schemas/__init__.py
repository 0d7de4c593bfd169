from decision_game.schemas.payload_contracts import (
    SaveScoreEnvelope,
    describe_validation_error,
    parse_mode,
)

__all__ = [
    "SaveScoreEnvelope",
    "describe_validation_error",
    "parse_mode",
]
