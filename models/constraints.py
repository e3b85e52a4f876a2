"""
Constraint and weight configuration for the rotation engine.

Defines the algorithm variants, scoring weights, hard rotation constraints and
the per-store/per-weekday staffing override table.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .store import Weekday


# Tolerance used when checking that the scoring weights sum to 1.0
WEIGHT_SUM_TOLERANCE = 0.01


class ConstraintType(Enum):
    """Hard constraints the engine filters candidates on."""
    AVAILABILITY = "availability"        # Marked unavailable in preferences
    DOUBLE_BOOKING = "double_booking"    # Already working that date
    REST_PERIOD = "rest_period"          # Minimum rest between shifts
    CONSECUTIVE_DAYS = "consecutive"     # Max consecutive working days
    HOURS_MAX = "hours_max"              # Weekly hour ceiling


class AlgorithmVariant(Enum):
    """Scoring strategies supported by the engine."""
    ROUND_ROBIN = "round_robin"
    WEIGHTED_FAIR = "weighted_fair"
    PREFERENCE_BASED = "preference_based"
    HYBRID = "hybrid"


@dataclass
class ScoringWeights:
    """
    Weights of the four soft-objective components.

    The hybrid variant expects them to sum to 1.0. This is advisory only:
    weights are applied exactly as given.
    """
    equity: float = 0.4
    preference: float = 0.3
    rest: float = 0.2
    experience: float = 0.1

    def total(self) -> float:
        return self.equity + self.preference + self.rest + self.experience

    def is_balanced(self) -> bool:
        return abs(self.total() - 1.0) < WEIGHT_SUM_TOLERANCE

    def for_variant(self, variant: AlgorithmVariant) -> "ScoringWeights":
        """
        Effective weights for an algorithm variant.

        - round_robin: equity only
        - weighted_fair: preferences ignored
        - preference_based: preference and equity only
        - hybrid: as configured
        """
        if variant == AlgorithmVariant.ROUND_ROBIN:
            return ScoringWeights(equity=1.0, preference=0.0, rest=0.0, experience=0.0)
        if variant == AlgorithmVariant.WEIGHTED_FAIR:
            return ScoringWeights(self.equity, 0.0, self.rest, self.experience)
        if variant == AlgorithmVariant.PREFERENCE_BASED:
            return ScoringWeights(self.equity, self.preference, 0.0, 0.0)
        return self

    def to_dict(self) -> Dict[str, float]:
        return {
            "equity": self.equity,
            "preference": self.preference,
            "rest": self.rest,
            "experience": self.experience,
        }


@dataclass(frozen=True)
class StaffRequirement:
    """Headcount override for one store on one weekday."""
    min_staff: int
    max_staff: Optional[int] = None

    def __post_init__(self):
        if self.min_staff < 0:
            raise ValueError("min_staff cannot be negative")
        if self.max_staff is not None and self.max_staff < self.min_staff:
            raise ValueError(
                f"max_staff ({self.max_staff}) cannot be lower than min_staff ({self.min_staff})"
            )


class _NoOverride:
    """Sentinel returned when no staffing override is configured."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_OVERRIDE"


NO_OVERRIDE = _NoOverride()


class StaffRequirementTable:
    """
    Fixed-shape table of staffing overrides indexed by (store id, weekday).

    Every lookup returns either a StaffRequirement or NO_OVERRIDE, never None.
    """

    def __init__(self, overrides: Optional[Dict[Tuple[str, Weekday], StaffRequirement]] = None):
        self._table: Dict[Tuple[str, Weekday], StaffRequirement] = dict(overrides or {})

    def set(self, store_id: str, weekday: Weekday,
            min_staff: int, max_staff: Optional[int] = None) -> None:
        self._table[(store_id, weekday)] = StaffRequirement(min_staff, max_staff)

    def clear(self, store_id: str, weekday: Weekday) -> None:
        self._table.pop((store_id, weekday), None)

    def get(self, store_id: str, weekday: Weekday) -> Union[StaffRequirement, _NoOverride]:
        return self._table.get((store_id, weekday), NO_OVERRIDE)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, key: Tuple[str, Weekday]) -> bool:
        return key in self._table


@dataclass
class RotationConstraints:
    """
    Hard constraints applied while filtering candidates.

    Attributes:
        min_rest_hours: Minimum rest between the end of one shift and the next
        max_consecutive_shifts: Maximum consecutive working days
        max_weekly_hours: Net-hour ceiling per ISO week
        min_weekly_hours: Target minimum per week (reporting only)
        require_weekend_rotation: Rotate weekend slots across the team
        staff_requirements: Per-store/per-weekday headcount overrides
    """
    min_rest_hours: float = 12.0
    max_consecutive_shifts: int = 5
    max_weekly_hours: float = 48.0
    min_weekly_hours: float = 20.0
    require_weekend_rotation: bool = True
    staff_requirements: StaffRequirementTable = field(default_factory=StaffRequirementTable)


@dataclass
class RotationAlgorithmConfig:
    """
    Configuration read at the start of each assignment run.

    Attributes:
        algorithm: Scoring strategy
        weights: Soft-objective weights
        look_ahead_days: Window used for recent-load and weekend-rotation lookback
        max_iterations: Maximum candidates evaluated per slot
        constraints: Hard constraints
    """
    algorithm: AlgorithmVariant = AlgorithmVariant.HYBRID
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    look_ahead_days: int = 14
    max_iterations: int = 1000
    constraints: RotationConstraints = field(default_factory=RotationConstraints)

    def weight_warnings(self) -> List[str]:
        """Advisory messages about the configuration; never blocks a run."""
        warnings = []
        if self.algorithm == AlgorithmVariant.HYBRID and not self.weights.is_balanced():
            warnings.append(
                f"Scoring weights sum to {self.weights.total():.2f} instead of 1.00; "
                f"using them unnormalised"
            )
        if self.constraints.min_weekly_hours > self.constraints.max_weekly_hours:
            warnings.append(
                f"Minimum weekly hours ({self.constraints.min_weekly_hours:g}) exceed "
                f"maximum ({self.constraints.max_weekly_hours:g})"
            )
        return warnings
