"""Mode-aware ordering of score records.

short / long:
  1) fewer mistakes (total_questions - correct)
  2) lower total_time_ms
  3) lower avg_time_ms

infinite:
  1) more correct
  2) lower avg_time_ms
  3) lower total_time_ms

A record is strictly better than another when its ranking key is strictly
smaller. Equal keys are ties: neither side is better.
"""
from __future__ import annotations

from functools import cmp_to_key
from typing import Callable, Iterable, Protocol

from decision_game.entities.score import GameMode


class Rankable(Protocol):
    mode: GameMode
    correct: int
    total_questions: int
    total_time_ms: float
    avg_time_ms: float

    @property
    def mistakes(self) -> int: ...


RankingKey = tuple[float, float, float]


def fixed_length_key(score: Rankable) -> RankingKey:
    return (score.mistakes, score.total_time_ms, score.avg_time_ms)


def infinite_key(score: Rankable) -> RankingKey:
    return (-score.correct, score.avg_time_ms, score.total_time_ms)


RANKING_KEYS: dict[GameMode, Callable[[Rankable], RankingKey]] = {
    GameMode.SHORT: fixed_length_key,
    GameMode.LONG: fixed_length_key,
    GameMode.INFINITE: infinite_key,
}


class ScoreRanking:
    def __init__(self, keys: dict[GameMode, Callable[[Rankable], RankingKey]] | None = None):
        self._keys = dict(keys or RANKING_KEYS)

    def key_for(self, mode: GameMode) -> Callable[[Rankable], RankingKey]:
        try:
            return self._keys[GameMode(mode)]
        except (KeyError, ValueError):
            raise ValueError(f"No ranking rule for mode {mode!r}") from None

    def is_better(self, a: Rankable, b: Rankable) -> bool:
        """True iff ``a`` ranks strictly ahead of ``b``. Both must share a mode."""
        if a.mode != b.mode:
            raise ValueError(f"Cannot rank a {a.mode} score against a {b.mode} score")
        key = self.key_for(a.mode)
        return key(a) < key(b)

    def compare(self, a: Rankable, b: Rankable) -> int:
        if self.is_better(a, b):
            return -1
        if self.is_better(b, a):
            return 1
        return 0

    def sort(self, scores: Iterable[Rankable], mode: GameMode) -> list:
        """Best first. Stable, so sorting an already sorted list is a no-op."""
        scores = list(scores)
        for score in scores:
            if score.mode != mode:
                raise ValueError(f"Cannot rank a {score.mode} score on the {mode} leaderboard")
        return sorted(scores, key=cmp_to_key(self.compare))
