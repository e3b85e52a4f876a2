"""
Rotation Engine Agent - Assigns employees to shift slots over a date window.

Day-by-day, slot-by-slot greedy assignment with scored candidate selection:
1. Store calendar + staffing overrides produce candidate slots
2. Hard constraints filter the employee pool (availability, double booking,
   rest, consecutive days, weekly hours)
3. Survivors are ranked by a weighted fit score (equity, preference, rest
   margin, experience); weekend slots go first to employees owed a weekend
4. The top-N candidates are placed and the run accumulator is updated

All running totals live in a RunAccumulator created for a single call to
execute(), so two runs never share state.
"""
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from .base_agent import BaseAgent
from benchmark import profile_function
from config import EngineConfig, default_algorithm_config
from models.constraints import ConstraintType, RotationAlgorithmConfig, ScoringWeights
from models.employee import Employee, EmployeePreference
from models.schedule import AssignmentStatus, Schedule, ShiftAssignment
from models.scoring import ScoreComponents, rest_margin, team_equity_score, to_score, weighted_fit
from models.shift import ShiftType
from models.store import Store, Weekday


class RunFailure(Enum):
    """Reasons a run produced nothing without raising."""
    INVALID_DATE_RANGE = "invalid_date_range"
    NO_EMPLOYEES = "no_employees"
    NO_ELIGIBLE_EMPLOYEES = "no_eligible_employees"
    NO_STORES = "no_stores"
    NO_SHIFT_TYPES = "no_shift_types"
    STORE_NOT_FOUND = "store_not_found"
    NO_OPENING_HOURS = "no_opening_hours"
    STORE_INACTIVE = "store_inactive"


@dataclass(frozen=True)
class Slot:
    """A (store, date, shift type) position requiring a headcount."""
    store_id: str
    date: date
    shift_type: ShiftType
    required: int

    @property
    def slot_id(self) -> str:
        return f"{self.store_id}:{self.date.isoformat()}:{self.shift_type.id}"

    @property
    def start(self) -> datetime:
        return self.shift_type.start_on(self.date)

    @property
    def end(self) -> datetime:
        return self.shift_type.end_on(self.date)

    @property
    def is_weekend(self) -> bool:
        return Weekday.from_date(self.date).is_weekend


@dataclass
class UnfilledSlot:
    """A slot left below its headcount because no eligible candidate remained."""
    store_id: str
    date: date
    shift_type_id: str
    required: int
    filled: int

    @property
    def missing(self) -> int:
        return self.required - self.filled


@dataclass
class CandidateScore:
    """
    Score of one employee for one slot.

    Attributes:
        employee_id: Candidate
        components: Equity / preference / rest / experience components
        total: Weighted fit
        owed_weekend: Has not worked a weekend in the lookback window
    """
    employee_id: str
    components: ScoreComponents
    total: float
    owed_weekend: bool = False

    def __str__(self) -> str:
        c = self.components
        return (
            f"Candidate({self.employee_id}: {self.total:.3f} = "
            f"eq:{c.equity:.2f} pref:{c.preference:.2f} "
            f"rest:{c.rest:.2f} exp:{c.experience:.2f}"
            f"{' weekend-owed' if self.owed_weekend else ''})"
        )


@dataclass
class RunSummary:
    """Structured metadata about one engine run."""
    counts_per_date: Dict[date, int] = field(default_factory=dict)
    counts_per_employee: Dict[str, int] = field(default_factory=dict)
    unfilled_slots: List[UnfilledSlot] = field(default_factory=list)
    slots_evaluated: int = 0
    rejections: Dict[ConstraintType, int] = field(default_factory=dict)
    weight_warnings: List[str] = field(default_factory=list)
    equity_score: int = 100

    @property
    def unfilled_count(self) -> int:
        return len(self.unfilled_slots)

    @property
    def missing_positions(self) -> int:
        return sum(s.missing for s in self.unfilled_slots)

    def to_dict(self) -> dict:
        return {
            "counts_per_date": {d.isoformat(): n for d, n in self.counts_per_date.items()},
            "counts_per_employee": dict(self.counts_per_employee),
            "unfilled_slots": self.unfilled_count,
            "missing_positions": self.missing_positions,
            "slots_evaluated": self.slots_evaluated,
            "rejections": {k.value: v for k, v in self.rejections.items()},
            "weight_warnings": list(self.weight_warnings),
            "equity_score": self.equity_score,
        }


@dataclass
class AssignmentResult:
    """New assignments plus run metadata; reason is set when the run was refused."""
    assignments: List[ShiftAssignment] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    reason: Optional[RunFailure] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


class RunAccumulator:
    """
    Running state owned by exactly one engine run.

    Holds a schedule view of committed plus placed assignments (used for rest,
    consecutive-day, weekly-hour and recent-load lookups) and per-store/day
    headcount totals, which start from the committed assignments.
    """

    def __init__(self, existing_assignments: Iterable[ShiftAssignment] = ()):
        self.schedule = Schedule(list(existing_assignments))
        self.placed: List[ShiftAssignment] = []
        self.store_day_counts: Dict[tuple, int] = defaultdict(int)
        for assignment in self.schedule:
            self.store_day_counts[(assignment.store_id, assignment.date)] += 1
        self.rejections: Counter = Counter()
        self.unfilled: List[UnfilledSlot] = []
        self.slots_evaluated = 0

    def place(self, assignment: ShiftAssignment) -> None:
        self.schedule.add_assignment(assignment)
        self.placed.append(assignment)
        self.store_day_counts[(assignment.store_id, assignment.date)] += 1


@dataclass
class RunContext:
    """Immutable inputs shared by every slot decision of a run."""
    config: RotationAlgorithmConfig
    weights: ScoringWeights
    preferences: Dict[str, EmployeePreference]
    run_timestamp: datetime
    engine: EngineConfig = field(default_factory=EngineConfig)


class RotationEngineAgent(BaseAgent):
    """
    Agent responsible for generating shift assignments.

    Responsibilities:
    - Derive candidate slots from store calendars and staffing overrides
    - Enforce rest, consecutive-day, weekly-hour and availability constraints
    - Rank candidates by equity, preference, rest margin and experience
    - Rotate weekend work across the team
    - Report understaffed slots without aborting the run
    """

    def __init__(self, config: Optional[RotationAlgorithmConfig] = None,
                 engine_config: Optional[EngineConfig] = None,
                 verbose: bool = True):
        super().__init__("RotationEngine", verbose=verbose)
        self.config = config or default_algorithm_config()
        self.engine_config = engine_config or EngineConfig()

    @profile_function
    def execute(self,
                employees: Sequence[Employee],
                shift_types: Sequence[ShiftType],
                start_date: date,
                end_date: date,
                stores: Sequence[Store],
                existing_assignments: Iterable[ShiftAssignment] = (),
                store_id: Optional[str] = None,
                preferences: Optional[Dict[str, EmployeePreference]] = None,
                run_timestamp: Optional[datetime] = None,
                **kwargs) -> AssignmentResult:
        """
        Generate assignments for the closed interval [start_date, end_date].

        Args:
            employees: Candidate employees
            shift_types: Shift-type catalog
            start_date: First day to schedule
            end_date: Last day to schedule (inclusive)
            stores: Store calendars
            existing_assignments: Assignments committed elsewhere
            store_id: Restrict the run to one store and its employees
            preferences: Preference record per employee id
            run_timestamp: Recorded as assigned_at on every new assignment

        Returns:
            AssignmentResult; an empty result with a reason when inputs are unusable
        """
        config = self.config
        warnings = config.weight_warnings()
        for warning in warnings:
            self.log(f"⚠️ {warning}", "warning")

        failure = self._validate_inputs(employees, shift_types, start_date, end_date, stores, store_id)
        if failure is not None:
            self.log(f"Run refused: {failure.value}", "warning")
            return AssignmentResult(summary=RunSummary(weight_warnings=warnings), reason=failure)

        pool = sorted(
            (e for e in employees if e.is_active and (store_id is None or e.store_id == store_id)),
            key=lambda e: e.id
        )
        if not pool:
            self.log(f"No active employees for store {store_id or 'any'}", "warning")
            return AssignmentResult(
                summary=RunSummary(weight_warnings=warnings),
                reason=RunFailure.NO_ELIGIBLE_EMPLOYEES
            )

        run_stores = self._stores_for_run(stores, store_id)
        if not run_stores:
            self.log("No store has opening hours configured", "warning")
            return AssignmentResult(
                summary=RunSummary(weight_warnings=warnings),
                reason=RunFailure.NO_OPENING_HOURS
            )

        context = RunContext(
            config=config,
            weights=config.weights.for_variant(config.algorithm),
            preferences=dict(preferences or {}),
            run_timestamp=run_timestamp or datetime.now(),
            engine=self.engine_config,
        )
        accumulator = RunAccumulator(existing_assignments)
        catalog = sorted(shift_types, key=lambda st: (st.start_time, st.id))

        self.log(
            f"Starting {config.algorithm.value} rotation for {len(pool)} employees, "
            f"{len(run_stores)} store(s), {start_date} → {end_date}"
        )

        current = start_date
        while current <= end_date:
            for store in run_stores:
                for slot in self.build_slots(store, current, catalog, config):
                    self.fill_slot(slot, pool, accumulator, context)
            current += timedelta(days=1)

        summary = self._build_summary(accumulator, pool, warnings)
        self.log(
            f"Rotation complete: {len(accumulator.placed)} assignments, "
            f"{summary.unfilled_count} unfilled slots, equity {summary.equity_score}/100",
            "success" if summary.unfilled_count == 0 else "warning"
        )
        return AssignmentResult(assignments=list(accumulator.placed), summary=summary)

    # ==================== Input validation ====================

    def _validate_inputs(self, employees, shift_types, start_date, end_date,
                         stores, store_id) -> Optional[RunFailure]:
        if start_date > end_date:
            return RunFailure.INVALID_DATE_RANGE
        if not employees:
            return RunFailure.NO_EMPLOYEES
        if not stores:
            return RunFailure.NO_STORES
        if not shift_types:
            return RunFailure.NO_SHIFT_TYPES
        if store_id is not None:
            store = next((s for s in stores if s.id == store_id), None)
            if store is None:
                return RunFailure.STORE_NOT_FOUND
            if not store.is_active:
                return RunFailure.STORE_INACTIVE
            if not store.has_opening_hours():
                return RunFailure.NO_OPENING_HOURS
        return None

    def _stores_for_run(self, stores: Sequence[Store], store_id: Optional[str]) -> List[Store]:
        if store_id is not None:
            return [s for s in stores if s.id == store_id]
        return sorted(
            (s for s in stores if s.is_active and s.has_opening_hours()),
            key=lambda s: s.id
        )

    # ==================== Slot generation ====================

    def build_slots(self, store: Store, target_date: date,
                    catalog: Sequence[ShiftType],
                    config: RotationAlgorithmConfig) -> List[Slot]:
        """
        Candidate slots for one store on one date.

        Shift types overlapping the opening interval by at least the minimum
        overlap become slots. Headcount comes from the staffing override for
        (store, weekday) when present, else from the shift type.
        """
        hours = store.effective_hours(target_date)
        if hours is None:
            return []

        override = config.constraints.staff_requirements.get(store.id, Weekday.from_date(target_date))
        min_overlap = timedelta(hours=self.engine_config.min_slot_overlap_hours)

        slots = []
        for shift_type in catalog:
            if shift_type.overlap_with(hours.open_time, hours.close_time) < min_overlap:
                continue
            required = override.min_staff if override else shift_type.required_staff
            if required > 0:
                slots.append(Slot(store.id, target_date, shift_type, required))
        return slots

    # ==================== Slot filling ====================

    def fill_slot(self, slot: Slot, pool: Sequence[Employee],
                  accumulator: RunAccumulator, context: RunContext) -> List[ShiftAssignment]:
        """
        Fill one slot and record the placements in the accumulator.

        Args:
            slot: The slot to fill
            pool: Employees sorted by id
            accumulator: Running state of this run
            context: Configuration and preferences for this run

        Returns:
            The assignments created for the slot
        """
        accumulator.slots_evaluated += 1
        wanted = self._positions_available(slot, accumulator, context.config)
        if wanted <= 0:
            self.log(f"Staff cap reached at {slot.store_id} on {slot.date}, skipping {slot.shift_type.id}", "debug")
            return []

        eligible = []
        for employee in pool:
            rejection = self._check_hard_constraints(employee, slot, accumulator, context)
            if rejection is not None:
                accumulator.rejections[rejection] += 1
                continue
            eligible.append(employee)

        # at most max_iterations survivors are scored, in id order
        scored = eligible[:context.config.max_iterations]
        ranked = self.rank_candidates(slot, scored, accumulator, context)

        created = []
        for candidate in ranked[:wanted]:
            assignment = self._create_assignment(slot, candidate, context)
            accumulator.place(assignment)
            created.append(assignment)

        if len(created) < wanted:
            accumulator.unfilled.append(UnfilledSlot(
                store_id=slot.store_id,
                date=slot.date,
                shift_type_id=slot.shift_type.id,
                required=wanted,
                filled=len(created),
            ))
            self.log(
                f"Understaffed: {slot.store_id} on {slot.date} {slot.shift_type.id} "
                f"({len(created)}/{wanted})",
                "warning"
            )

        return created

    def _positions_available(self, slot: Slot, accumulator: RunAccumulator,
                             config: RotationAlgorithmConfig) -> int:
        override = config.constraints.staff_requirements.get(slot.store_id, Weekday.from_date(slot.date))
        if not override or override.max_staff is None:
            return slot.required
        placed_today = accumulator.store_day_counts[(slot.store_id, slot.date)]
        return min(slot.required, override.max_staff - placed_today)

    def _check_hard_constraints(self, employee: Employee, slot: Slot,
                                accumulator: RunAccumulator,
                                context: RunContext) -> Optional[ConstraintType]:
        """
        Return the first hard constraint the employee would break, or None.
        """
        constraints = context.config.constraints
        preference = context.preferences.get(employee.id)
        schedule = accumulator.schedule

        if preference and preference.is_unavailable(slot.date):
            return ConstraintType.AVAILABILITY

        if schedule.is_employee_assigned(employee.id, slot.date):
            return ConstraintType.DOUBLE_BOOKING

        min_rest = timedelta(hours=constraints.min_rest_hours)
        before, after = schedule.get_rest_gaps(employee.id, slot.start, slot.end)
        if (before is not None and before < min_rest) or (after is not None and after < min_rest):
            return ConstraintType.REST_PERIOD

        max_consecutive = constraints.max_consecutive_shifts
        if preference and preference.max_consecutive_days:
            max_consecutive = min(max_consecutive, preference.max_consecutive_days)
        if schedule.get_consecutive_days(employee.id, slot.date) > max_consecutive:
            return ConstraintType.CONSECUTIVE_DAYS

        week_start = slot.date - timedelta(days=slot.date.weekday())
        week_hours = schedule.get_employee_hours(employee.id, week_start)
        if week_hours + slot.shift_type.net_hours > constraints.max_weekly_hours + 1e-9:
            return ConstraintType.HOURS_MAX

        return None

    # ==================== Scoring ====================

    def rank_candidates(self, slot: Slot, eligible: Sequence[Employee],
                        accumulator: RunAccumulator,
                        context: RunContext) -> List[CandidateScore]:
        """
        Score eligible employees and order them best first.

        Ordering: weekend-owed candidates first (weekend slots with rotation
        enabled), then higher score, then employee id.
        """
        if not eligible:
            return []

        config = context.config
        schedule = accumulator.schedule
        window_start = slot.date - timedelta(days=config.look_ahead_days)

        loads = {e.id: schedule.count_in_window(e.id, window_start, slot.date) for e in eligible}
        history = {e.id: schedule.count_in_window(e.id, date.min, slot.date) for e in eligible}
        max_load = max(loads.values())
        max_history = max(history.values())

        rotate_weekend = config.constraints.require_weekend_rotation and slot.is_weekend
        target_difficulty = (slot.shift_type.difficulty - 1) / 4

        scores = []
        for employee in eligible:
            equity = 1.0 - loads[employee.id] / max_load if max_load else 1.0
            experience_level = history[employee.id] / max_history if max_history else 0.0

            before, _ = schedule.get_rest_gaps(employee.id, slot.start, slot.end)
            rest = 1.0 if before is None else rest_margin(
                before.total_seconds() / 3600, config.constraints.min_rest_hours
            )

            components = ScoreComponents(
                equity=equity,
                preference=self._preference_match(context.preferences.get(employee.id), slot),
                rest=rest,
                experience=1.0 - abs(experience_level - target_difficulty),
            )
            owed = rotate_weekend and not schedule.has_weekend_in_window(
                employee.id, window_start, slot.date
            )
            scores.append(CandidateScore(
                employee_id=employee.id,
                components=components,
                total=weighted_fit(components, context.weights),
                owed_weekend=owed,
            ))

        scores.sort(key=lambda s: (not s.owed_weekend, -s.total, s.employee_id))
        return scores

    @staticmethod
    def _preference_match(preference: Optional[EmployeePreference], slot: Slot) -> float:
        """
        How well a slot matches stated preferences, graded by priority.

        Neutral 0.5 without preferences; 1.0 for a preferred shift type; 0.0 on a
        preferred day off; 0.25 when shift preferences exist but do not match.
        """
        if preference is None:
            return 0.5

        if preference.prefers_off(slot.date):
            raw = 0.0
        elif slot.shift_type.id in preference.preferred_shift_types:
            raw = 1.0
        elif preference.has_shift_preferences:
            raw = 0.25
        else:
            raw = 0.5

        return 0.5 + (raw - 0.5) * preference.priority.factor

    # ==================== Output ====================

    def _create_assignment(self, slot: Slot, candidate: CandidateScore,
                           context: RunContext) -> ShiftAssignment:
        return ShiftAssignment(
            id=f"rot-{slot.store_id}-{slot.date.isoformat()}-{slot.shift_type.id}-{candidate.employee_id}",
            employee_id=candidate.employee_id,
            shift_id=f"shift-{slot.date.isoformat()}-{slot.shift_type.id}",
            date=slot.date,
            shift_type=slot.shift_type,
            status=AssignmentStatus.ASSIGNED,
            assigned_by=context.engine.assigned_by,
            assigned_at=context.run_timestamp,
            rotation_score=to_score(candidate.total),
            store_id=slot.store_id,
        )

    def _build_summary(self, accumulator: RunAccumulator,
                       pool: Sequence[Employee], warnings: List[str]) -> RunSummary:
        per_date: Dict[date, int] = defaultdict(int)
        per_employee: Dict[str, int] = {e.id: 0 for e in pool}
        for assignment in accumulator.placed:
            per_date[assignment.date] += 1
            per_employee[assignment.employee_id] += 1

        return RunSummary(
            counts_per_date=dict(sorted(per_date.items())),
            counts_per_employee=per_employee,
            unfilled_slots=list(accumulator.unfilled),
            slots_evaluated=accumulator.slots_evaluated,
            rejections=dict(accumulator.rejections),
            weight_warnings=warnings,
            equity_score=team_equity_score(per_employee.values()),
        )
