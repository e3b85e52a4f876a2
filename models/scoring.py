"""
Shared fit scoring.

The same weighted sum is used when the engine ranks candidates and when the
statistics scorer rates an employee's rotation after the fact, so both scores
live on the same 0-1 scale.
"""
import math
import statistics
from dataclasses import dataclass
from typing import Iterable

from .constraints import ScoringWeights


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass
class ScoreComponents:
    """
    The four soft-objective components, each in [0, 1].

    Attributes:
        equity: 1 = least loaded relative to peers
        preference: 1 = matches stated preferences, 0.5 = neutral
        rest: 1 = ample rest above the legal minimum
        experience: 1 = difficulty well matched to experience
    """
    equity: float
    preference: float
    rest: float
    experience: float

    def __post_init__(self):
        self.equity = clamp(self.equity)
        self.preference = clamp(self.preference)
        self.rest = clamp(self.rest)
        self.experience = clamp(self.experience)


def weighted_fit(components: ScoreComponents, weights: ScoringWeights) -> float:
    """Weighted sum of the components; weights are applied unnormalised."""
    return (
        weights.equity * components.equity
        + weights.preference * components.preference
        + weights.rest * components.rest
        + weights.experience * components.experience
    )


def rest_margin(gap_hours: float, min_rest_hours: float) -> float:
    """Headroom above the rest minimum, normalised so that double the minimum is 1."""
    if min_rest_hours <= 0:
        return 1.0
    return clamp((gap_hours - min_rest_hours) / min_rest_hours)


def to_score(fit: float) -> float:
    """Convert a 0-1 fit into the 0-100 scale stored on assignments."""
    return round(fit * 100, 1)


def team_equity_score(counts: Iterable[int]) -> int:
    """
    Team equity score from per-employee assignment counts.

    100 - 10 x population standard deviation, floored at 0 and rounded half
    up to an integer. An empty team scores 100.
    """
    values = list(counts)
    if not values:
        return 100
    score = max(0.0, 100 - 10 * statistics.pstdev(values))
    return int(math.floor(score + 0.5))
