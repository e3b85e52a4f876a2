"""
Rotation Statistics Agent - Equity and rotation reporting over committed assignments.

Provides:
- team_equity_score: 0-100 evenness of per-employee assignment counts
- employee_statistics: per-employee distribution, hours, rest and rotation score
- team_summary: team-wide totals and distributions
- weekend_rest_report: weekends off and weekend fairness per employee
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .base_agent import BaseAgent
from config import default_algorithm_config
from models.constraints import RotationAlgorithmConfig
from models.employee import Employee
from models.schedule import ShiftAssignment
from models.scoring import (
    ScoreComponents, clamp, rest_margin, team_equity_score, to_score, weighted_fit
)
from models.shift import ShiftCategory
from models.store import Weekday

NO_REST_DATA_HOURS = 24.0

__all__ = [
    "RotationStatistics",
    "TeamRotationSummary",
    "RotationStatisticsAgent",
    "team_equity_score",
    "employee_statistics",
    "team_summary",
    "weekend_rest_report",
]


@dataclass
class RotationStatistics:
    """
    Rotation statistics for one employee over a period.

    Attributes:
        employee_id: Employee
        period_start: First day of the period
        period_end: Last day of the period
        total_shifts: Assignments in the period
        category_distribution: Shifts per category (every category present)
        total_hours: Sum of net shift hours
        average_rest_hours: Mean rest between consecutive worked days
        max_consecutive_days: Longest working-day run
        rotation_score: 0-100 fit compared with the team
        last_assignment_date: Most recent worked date
        average_assignment_score: Mean of the scores frozen on the assignments
    """
    employee_id: str
    period_start: date
    period_end: date
    total_shifts: int
    category_distribution: Dict[ShiftCategory, int]
    total_hours: float
    average_rest_hours: float
    max_consecutive_days: int
    rotation_score: float
    last_assignment_date: date
    average_assignment_score: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "period": f"{self.period_start} to {self.period_end}",
            "total_shifts": self.total_shifts,
            "category_distribution": {c.value: n for c, n in self.category_distribution.items()},
            "total_hours": self.total_hours,
            "average_rest_hours": self.average_rest_hours,
            "max_consecutive_days": self.max_consecutive_days,
            "rotation_score": self.rotation_score,
            "last_assignment_date": self.last_assignment_date.isoformat(),
            "average_assignment_score": self.average_assignment_score,
        }


@dataclass
class TeamRotationSummary:
    """Team-wide aggregate over a period."""
    total_assignments: int = 0
    unique_employees: int = 0
    average_assignments_per_employee: float = 0.0
    equity_score: int = 100
    employee_distribution: Dict[str, int] = field(default_factory=dict)
    shift_type_distribution: Dict[str, int] = field(default_factory=dict)


# =============================================================================
# HELPERS
# =============================================================================

def _in_period(assignments: Iterable[ShiftAssignment], start: date, end: date,
               employee_id: Optional[str] = None) -> List[ShiftAssignment]:
    return sorted(
        (a for a in assignments
         if start <= a.date <= end and (employee_id is None or a.employee_id == employee_id)),
        key=lambda a: (a.start, a.employee_id, a.id)
    )


def _average_rest_hours(assignments: Sequence[ShiftAssignment]) -> float:
    """Mean gap between the last shift of one worked day and the first of the next."""
    first_start, last_end = {}, {}
    for a in assignments:
        first_start[a.date] = min(first_start.get(a.date, a.start), a.start)
        last_end[a.date] = max(last_end.get(a.date, a.end), a.end)

    days = sorted(first_start)
    gaps = [
        (first_start[later] - last_end[earlier]).total_seconds() / 3600
        for earlier, later in zip(days, days[1:])
    ]
    if not gaps:
        return NO_REST_DATA_HOURS
    return round(sum(gaps) / len(gaps), 2)


def _max_consecutive_days(work_dates: Iterable[date]) -> int:
    longest = current = 0
    previous = None
    for day in sorted(set(work_dates)):
        current = current + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, current)
        previous = day
    return longest


def _distribution_balance(own: Counter, team: Counter) -> float:
    """1 minus the total variation distance between two share distributions."""
    own_total, team_total = sum(own.values()), sum(team.values())
    if not own_total or not team_total:
        return 1.0
    keys = set(own) | set(team)
    distance = 0.5 * sum(abs(own[k] / own_total - team[k] / team_total) for k in keys)
    return clamp(1.0 - distance)


# =============================================================================
# SCORING
# =============================================================================

def employee_statistics(employee_id: str,
                        start: date,
                        end: date,
                        assignments: Iterable[ShiftAssignment],
                        config: Optional[RotationAlgorithmConfig] = None) -> Optional[RotationStatistics]:
    """
    Rotation statistics for one employee.

    Args:
        employee_id: Employee to report on
        start: First day of the period
        end: Last day of the period
        assignments: Team assignments; the employee's own are compared
            against the whole team for the rotation score
        config: Supplies the scoring weights and rest minimum

    Returns:
        RotationStatistics, or None when the employee has no assignments in the period
    """
    config = config or default_algorithm_config()
    team = _in_period(assignments, start, end)
    own = [a for a in team if a.employee_id == employee_id]
    if not own:
        return None

    categories = Counter(a.shift_type.category for a in own)
    distribution = {category: categories.get(category, 0) for category in ShiftCategory}

    team_counts = Counter(a.employee_id for a in team)
    team_average = sum(team_counts.values()) / len(team_counts)
    average_rest = _average_rest_hours(own)

    components = ScoreComponents(
        equity=1.0 - abs(len(own) - team_average) / max(team_average, 1.0),
        preference=_distribution_balance(
            categories, Counter(a.shift_type.category for a in team)
        ),
        rest=rest_margin(average_rest, config.constraints.min_rest_hours),
        experience=_distribution_balance(
            Counter(Weekday.from_date(a.date) for a in own),
            Counter(Weekday.from_date(a.date) for a in team),
        ),
    )
    weights = config.weights.for_variant(config.algorithm)
    rotation_score = min(100.0, to_score(weighted_fit(components, weights)))

    frozen_scores = [a.rotation_score for a in own if a.rotation_score is not None]

    return RotationStatistics(
        employee_id=employee_id,
        period_start=start,
        period_end=end,
        total_shifts=len(own),
        category_distribution=distribution,
        total_hours=round(sum(a.net_hours for a in own), 2),
        average_rest_hours=average_rest,
        max_consecutive_days=_max_consecutive_days(a.date for a in own),
        rotation_score=rotation_score,
        last_assignment_date=max(a.date for a in own),
        average_assignment_score=(
            round(sum(frozen_scores) / len(frozen_scores), 1) if frozen_scores else None
        ),
    )


def assignments_frame(assignments: Iterable[ShiftAssignment]) -> pd.DataFrame:
    """Flatten assignments into a DataFrame (one row per assignment)."""
    rows = [
        {
            "assignment_id": a.id,
            "employee_id": a.employee_id,
            "date": a.date,
            "shift_type_id": a.shift_type.id,
            "category": a.shift_type.category.value,
            "net_hours": a.net_hours,
            "store_id": a.store_id,
            "weekday": a.date.weekday(),
        }
        for a in assignments
    ]
    columns = ["assignment_id", "employee_id", "date", "shift_type_id",
               "category", "net_hours", "store_id", "weekday"]
    return pd.DataFrame(rows, columns=columns)


def team_summary(assignments: Iterable[ShiftAssignment], start: date, end: date) -> TeamRotationSummary:
    """
    Team-wide summary for a period.

    The equity score covers employees with at least one assignment in the period.
    """
    df = assignments_frame(_in_period(assignments, start, end))
    if df.empty:
        return TeamRotationSummary()

    per_employee = df.groupby("employee_id").size().sort_index()
    per_shift_type = df.groupby("shift_type_id").size().sort_index()

    return TeamRotationSummary(
        total_assignments=len(df),
        unique_employees=len(per_employee),
        average_assignments_per_employee=round(len(df) / len(per_employee), 1),
        equity_score=team_equity_score(int(n) for n in per_employee.values),
        employee_distribution={k: int(v) for k, v in per_employee.items()},
        shift_type_distribution={k: int(v) for k, v in per_shift_type.items()},
    )


def weekend_rest_report(employees: Sequence[Employee],
                        assignments: Iterable[ShiftAssignment],
                        start: date, end: date) -> pd.DataFrame:
    """
    Weekends off per employee.

    A weekend is analysed when its Saturday or Sunday falls inside [start, end].

    Returns:
        DataFrame indexed by employee_id with weekends, saturdays_off,
        sundays_off, full_weekends_off, weekend_work_pct and fairness_score
    """
    first_saturday = start + timedelta(days=(5 - start.weekday()) % 7)
    if start.weekday() == 6:
        first_saturday = start - timedelta(days=1)
    weekends = []
    saturday = first_saturday
    while saturday <= end:
        weekends.append((saturday, saturday + timedelta(days=1)))
        saturday += timedelta(days=7)

    worked = {(a.employee_id, a.date) for a in assignments}
    columns = ["employee_id", "employee_name", "weekends", "saturdays_off", "sundays_off",
               "full_weekends_off", "weekend_work_pct", "fairness_score"]

    rows = []
    for employee in sorted(employees, key=lambda e: e.id):
        saturdays_off = sum(1 for sat, _ in weekends if (employee.id, sat) not in worked)
        sundays_off = sum(1 for _, sun in weekends if (employee.id, sun) not in worked)
        full_off = sum(
            1 for sat, sun in weekends
            if (employee.id, sat) not in worked and (employee.id, sun) not in worked
        )
        total_days = 2 * len(weekends)
        work_pct = (total_days - saturdays_off - sundays_off) / total_days * 100 if total_days else 0.0
        fairness = max(0, 100 - abs(len(weekends) - (saturdays_off + sundays_off)) * 10)

        rows.append({
            "employee_id": employee.id,
            "employee_name": employee.name,
            "weekends": len(weekends),
            "saturdays_off": saturdays_off,
            "sundays_off": sundays_off,
            "full_weekends_off": full_off,
            "weekend_work_pct": round(work_pct, 1),
            "fairness_score": fairness,
        })

    return pd.DataFrame(rows, columns=columns).set_index("employee_id")


# =============================================================================
# AGENT
# =============================================================================

class RotationStatisticsAgent(BaseAgent):
    """
    Agent responsible for equity and rotation reporting.

    Responsibilities:
    - Per-employee rotation statistics
    - Team equity summary
    - Weekend rest fairness
    """

    def __init__(self, config: Optional[RotationAlgorithmConfig] = None, verbose: bool = True):
        super().__init__("RotationStatistics", verbose=verbose)
        self.config = config or default_algorithm_config()

    def execute(self,
                assignments: Iterable[ShiftAssignment],
                start: date,
                end: date,
                employee_id: Optional[str] = None,
                **kwargs):
        """
        Employee statistics when employee_id is given, otherwise the team summary.
        """
        assignments = list(assignments)
        if employee_id is not None:
            stats = employee_statistics(employee_id, start, end, assignments, self.config)
            if stats is None:
                self.log(f"No assignments for {employee_id} between {start} and {end}", "debug")
            else:
                self.log(
                    f"{employee_id}: {stats.total_shifts} shifts, {stats.total_hours:g}h, "
                    f"rotation score {stats.rotation_score:g}"
                )
            return stats

        summary = team_summary(assignments, start, end)
        level = "success" if summary.equity_score >= 80 else "warning"
        self.log(
            f"Team {start} → {end}: {summary.total_assignments} assignments across "
            f"{summary.unique_employees} employees, equity {summary.equity_score}/100",
            level
        )
        return summary
