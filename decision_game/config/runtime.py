from __future__ import annotations

from dataclasses import dataclass, field
import os

from decision_game.entities.score import DEFAULT_INITIALS_LENGTH, GameMode

UNKNOWN_MODE_REJECT = "reject"
UNKNOWN_MODE_DEFAULT = "default"


def _parse_modes(raw: str) -> tuple[GameMode, ...]:
    return tuple(GameMode(m.strip().lower()) for m in raw.split(",") if m.strip())


def _parse_origins(raw: str) -> tuple[str, ...]:
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class RuntimeSettings:
    allowed_modes: tuple[GameMode, ...] = field(default_factory=lambda: tuple(GameMode))
    initials_length: int = DEFAULT_INITIALS_LENGTH
    # leaderboards larger than the fetch limit are truncated before ranking
    leaderboard_fetch_limit: int = 1000
    leaderboard_size: int = 100
    unknown_mode_policy: str = UNKNOWN_MODE_REJECT
    default_mode: GameMode = GameMode.SHORT
    upsert_max_attempts: int = 3
    cors_allowed_origins: tuple[str, ...] = ("*",)
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def __post_init__(self):
        if self.unknown_mode_policy not in (UNKNOWN_MODE_REJECT, UNKNOWN_MODE_DEFAULT):
            raise ValueError(
                f"UNKNOWN_MODE_POLICY must be '{UNKNOWN_MODE_REJECT}' or '{UNKNOWN_MODE_DEFAULT}', "
                f"got {self.unknown_mode_policy!r}"
            )
        if not self.allowed_modes:
            raise ValueError("ALLOWED_MODES must name at least one mode")
        if self.default_mode not in self.allowed_modes:
            raise ValueError(f"DEFAULT_MODE {self.default_mode!r} is not an allowed mode")
        if self.initials_length < 1:
            raise ValueError("INITIALS_LENGTH must be at least 1")
        if self.leaderboard_size < 1 or self.leaderboard_fetch_limit < self.leaderboard_size:
            raise ValueError("LEADERBOARD_FETCH_LIMIT must be >= LEADERBOARD_SIZE >= 1")

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            allowed_modes=_parse_modes(os.getenv("ALLOWED_MODES", "short,long,infinite")),
            initials_length=int(os.getenv("INITIALS_LENGTH", str(DEFAULT_INITIALS_LENGTH))),
            leaderboard_fetch_limit=int(os.getenv("LEADERBOARD_FETCH_LIMIT", "1000")),
            leaderboard_size=int(os.getenv("LEADERBOARD_SIZE", "100")),
            unknown_mode_policy=os.getenv("UNKNOWN_MODE_POLICY", UNKNOWN_MODE_REJECT).strip().lower(),
            default_mode=GameMode(os.getenv("DEFAULT_MODE", "short").strip().lower()),
            upsert_max_attempts=int(os.getenv("UPSERT_MAX_ATTEMPTS", "3")),
            cors_allowed_origins=_parse_origins(os.getenv("CORS_ALLOWED_ORIGINS", "*")),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )
