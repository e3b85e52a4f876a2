from collections import defaultdict
from datetime import timedelta

import pytest

from agents.rotation_engine import RotationEngineAgent, RunAccumulator, RunContext, RunFailure, Slot
from config import DEFAULT_SHIFT_TYPES
from models.constraints import ConstraintType, ScoringWeights
from models.employee import Employee, EmployeePreference, PreferencePriority
from models.schedule import AssignmentStatus
from models.shift import ShiftType
from models.store import ClosureDay, OpeningHours, Store, Weekday

from conftest import MONDAY, RUN_AT


def run(engine, employees, shift_types, stores, start=MONDAY, end=None, **kwargs):
    return engine.execute(
        employees=employees,
        shift_types=shift_types,
        start_date=start,
        end_date=end or start,
        stores=stores,
        run_timestamp=RUN_AT,
        **kwargs
    )


def weekend_store():
    hours = OpeningHours.parse("09:00", "18:00")
    return Store(
        id="store-1",
        name="Centro",
        opening_hours={day: (hours if day.is_weekend else None) for day in Weekday},
    )


class TestTwoWeekScenario:

    def test_weekday_store_yields_ten_balanced_assignments(self, engine, employees, day_shift, weekday_store):
        result = run(engine, employees, [day_shift], [weekday_store], end=MONDAY + timedelta(days=13))

        assert result.ok
        assert len(result.assignments) == 10
        assert all(a.date.weekday() < 5 for a in result.assignments)
        assert result.summary.counts_per_employee == {"emp-1": 5, "emp-2": 5}
        assert result.summary.equity_score >= 90
        assert result.summary.unfilled_count == 0
        assert len(result.summary.counts_per_date) == 10

    def test_assignment_fields(self, engine, employees, day_shift, weekday_store):
        result = run(engine, employees, [day_shift], [weekday_store])

        assignment = result.assignments[0]
        assert assignment.employee_id == "emp-1"
        assert assignment.shift_id == "shift-2025-01-06-day"
        assert assignment.status == AssignmentStatus.ASSIGNED
        assert assignment.assigned_by == "optimized-algorithm"
        assert assignment.assigned_at == RUN_AT
        assert assignment.store_id == "store-1"
        assert assignment.shift_type == day_shift
        assert assignment.rotation_score == 85.0


class TestInvariants:

    @pytest.fixture
    def team(self):
        return [Employee(f"emp-{n}", f"Employee {n}", store_id="store-1") for n in range(1, 6)]

    def test_no_double_booking_and_minimum_rest(self, engine, team, all_week_store, config):
        result = run(engine, team, DEFAULT_SHIFT_TYPES, [all_week_store], end=MONDAY + timedelta(days=27))

        keys = [(a.employee_id, a.date) for a in result.assignments]
        assert len(keys) == len(set(keys))

        by_employee = defaultdict(list)
        for a in result.assignments:
            by_employee[a.employee_id].append(a)

        min_rest = timedelta(hours=config.constraints.min_rest_hours)
        for shifts in by_employee.values():
            shifts.sort(key=lambda a: a.start)
            for earlier, later in zip(shifts, shifts[1:]):
                assert later.start - earlier.end >= min_rest

    def test_weekly_hours_and_consecutive_limits(self, engine, team, all_week_store, config):
        result = run(engine, team, DEFAULT_SHIFT_TYPES, [all_week_store], end=MONDAY + timedelta(days=27))

        weekly = defaultdict(float)
        dates = defaultdict(set)
        for a in result.assignments:
            weekly[(a.employee_id, a.date.isocalendar()[1])] += a.net_hours
            dates[a.employee_id].add(a.date)

        assert max(weekly.values()) <= config.constraints.max_weekly_hours

        for worked in dates.values():
            for day in worked:
                run_length = 1
                while day + timedelta(days=run_length) in worked:
                    run_length += 1
                assert run_length <= config.constraints.max_consecutive_shifts

    def test_closed_days_are_skipped(self, engine, employees, day_shift):
        hours = OpeningHours.parse("09:00", "18:00")
        store = Store(
            id="store-1",
            name="Centro",
            opening_hours={day: (None if day == Weekday.WEDNESDAY else hours) for day in Weekday},
            closure_days=[ClosureDay(MONDAY + timedelta(days=3), reason="Inventario")],
        )

        result = run(engine, employees, [day_shift], [store], end=MONDAY + timedelta(days=6))

        worked = {a.date for a in result.assignments}
        assert MONDAY + timedelta(days=2) not in worked
        assert MONDAY + timedelta(days=3) not in worked
        assert len(worked) == 5

    def test_reduced_closure_hours_drop_short_overlap_slots(self, engine, employees, day_shift):
        store = Store(
            id="store-1",
            name="Centro",
            opening_hours={day: OpeningHours.parse("09:00", "18:00") for day in Weekday},
            closure_days=[ClosureDay(MONDAY, "Vigilia", is_full_day=False,
                                     custom_hours=OpeningHours.parse("15:30", "18:00"))],
        )

        result = run(engine, employees, [day_shift], [store])

        assert result.assignments == []

    def test_identical_inputs_give_identical_output(self, engine, employees, all_week_store):
        first = run(engine, employees, DEFAULT_SHIFT_TYPES, [all_week_store], end=MONDAY + timedelta(days=13))
        second = run(engine, employees, DEFAULT_SHIFT_TYPES, [all_week_store], end=MONDAY + timedelta(days=13))

        assert [a.to_dict() for a in first.assignments] == [a.to_dict() for a in second.assignments]
        assert first.summary.to_dict() == second.summary.to_dict()


class TestFailureReasons:

    def test_empty_employee_set(self, engine, day_shift, weekday_store):
        result = run(engine, [], [day_shift], [weekday_store])
        assert result.reason == RunFailure.NO_EMPLOYEES
        assert result.assignments == []

    def test_empty_store_set(self, engine, employees, day_shift):
        assert run(engine, employees, [day_shift], []).reason == RunFailure.NO_STORES

    def test_empty_catalog(self, engine, employees, weekday_store):
        assert run(engine, employees, [], [weekday_store]).reason == RunFailure.NO_SHIFT_TYPES

    def test_unknown_store_filter(self, engine, employees, day_shift, weekday_store):
        result = run(engine, employees, [day_shift], [weekday_store], store_id="store-9")
        assert result.reason == RunFailure.STORE_NOT_FOUND

    def test_store_without_opening_hours(self, engine, employees, day_shift):
        store = Store(id="store-1", name="Nuovo")
        result = run(engine, employees, [day_shift], [store], store_id="store-1")
        assert result.reason == RunFailure.NO_OPENING_HOURS

    def test_no_employee_of_filtered_store(self, engine, employees, day_shift, weekday_store):
        other = Store(id="store-2", name="Periferia", opening_hours=dict(weekday_store.opening_hours))
        result = run(engine, employees, [day_shift], [weekday_store, other], store_id="store-2")
        assert result.reason == RunFailure.NO_ELIGIBLE_EMPLOYEES

    def test_inverted_date_range(self, engine, employees, day_shift, weekday_store):
        result = run(engine, employees, [day_shift], [weekday_store], start=MONDAY, end=MONDAY - timedelta(days=1))
        assert result.reason == RunFailure.INVALID_DATE_RANGE

    def test_inactive_filtered_store(self, engine, employees, day_shift, weekday_store):
        closed = Store(id="store-1", name="Centro", opening_hours=dict(weekday_store.opening_hours), is_active=False)

        result = run(engine, employees, [day_shift], [closed], store_id="store-1")

        assert result.reason == RunFailure.STORE_INACTIVE
        assert result.assignments == []


class TestStaffing:

    def test_understaffed_slot_is_reported(self, engine, day_shift, weekday_store):
        crowded = ShiftType.from_hhmm("day", "Giornata", "09:00", "17:00", required_staff=2)
        solo = [Employee("emp-1", "Anna Rossi", store_id="store-1")]

        result = run(engine, solo, [crowded], [weekday_store])

        assert result.ok
        assert len(result.assignments) == 1
        assert result.summary.unfilled_count == 1
        assert result.summary.missing_positions == 1
        assert result.summary.unfilled_slots[0].shift_type_id == "day"

    def test_override_sets_headcount(self, engine, config, day_shift, weekday_store):
        config.constraints.staff_requirements.set("store-1", Weekday.MONDAY, min_staff=2)
        team = [Employee(f"emp-{n}", f"Employee {n}", store_id="store-1") for n in range(1, 4)]

        result = run(engine, team, [day_shift], [weekday_store], end=MONDAY + timedelta(days=1))

        assert result.summary.counts_per_date[MONDAY] == 2
        assert result.summary.counts_per_date[MONDAY + timedelta(days=1)] == 1

    def test_override_max_caps_store_day(self, engine, config, all_week_store):
        config.constraints.staff_requirements.set("store-1", Weekday.MONDAY, min_staff=1, max_staff=1)
        catalog = [DEFAULT_SHIFT_TYPES[0], DEFAULT_SHIFT_TYPES[2]]
        team = [Employee(f"emp-{n}", f"Employee {n}", store_id="store-1") for n in range(1, 4)]

        result = run(engine, team, catalog, [all_week_store])

        assert len(result.assignments) == 1
        assert result.summary.unfilled_count == 0

    def test_committed_staff_count_toward_the_cap(self, engine, config, employees, day_shift, weekday_store,
                                                  make_assignment):
        config.constraints.staff_requirements.set("store-1", Weekday.MONDAY, min_staff=1, max_staff=1)
        committed = make_assignment("emp-9", MONDAY)

        result = run(engine, employees, [day_shift], [weekday_store], existing_assignments=[committed])

        assert result.assignments == []
        assert result.summary.unfilled_count == 0

    def test_cap_leaves_room_beside_committed_staff(self, engine, config, employees, day_shift, weekday_store,
                                                   make_assignment):
        config.constraints.staff_requirements.set("store-1", Weekday.MONDAY, min_staff=2, max_staff=2)
        committed = make_assignment("emp-9", MONDAY)

        result = run(engine, employees, [day_shift], [weekday_store], existing_assignments=[committed])

        assert [a.employee_id for a in result.assignments] == ["emp-1"]
        assert result.summary.unfilled_count == 0

    def test_iteration_bound_applies_after_filtering(self, engine, config, employees, day_shift, weekday_store):
        config.max_iterations = 1
        preferences = {"emp-1": EmployeePreference("emp-1", unavailable_dates={MONDAY})}

        result = run(engine, employees, [day_shift], [weekday_store],
                     end=MONDAY + timedelta(days=4), preferences=preferences)

        assert result.summary.unfilled_count == 0
        assert [a.date for a in result.assignments if a.employee_id == "emp-2"] == [MONDAY]
        assert len(result.assignments) == 5

    def test_build_slots_respects_minimum_overlap(self, engine, config, weekday_store):
        catalog = [
            ShiftType.from_hhmm("early", "Early", "07:00", "15:00"),
            ShiftType.from_hhmm("late", "Late", "16:00", "21:00"),
            ShiftType.from_hhmm("evening", "Evening", "17:00", "22:00"),
        ]

        slots = engine.build_slots(weekday_store, MONDAY, catalog, config)

        assert [s.shift_type.id for s in slots] == ["early", "late"]

    def test_unfiltered_run_covers_every_open_store(self, engine, day_shift, weekday_store):
        other = Store(id="store-2", name="Periferia", opening_hours=dict(weekday_store.opening_hours))
        team = [
            Employee("emp-1", "Anna Rossi", store_id="store-1"),
            Employee("emp-2", "Luca Bianchi", store_id="store-2"),
        ]

        result = run(engine, team, [day_shift], [weekday_store, other])

        assert {a.store_id for a in result.assignments} == {"store-1", "store-2"}


class TestHardConstraints:

    def test_rest_against_existing_later_shift(self, engine, employees, day_shift, weekday_store, make_assignment):
        early_tuesday = make_assignment("emp-1", MONDAY + timedelta(days=1), "04:00", "12:00")

        result = run(engine, employees, [day_shift], [weekday_store], existing_assignments=[early_tuesday])

        assert [a.employee_id for a in result.assignments] == ["emp-2"]
        assert result.summary.rejections[ConstraintType.REST_PERIOD] == 1

    def test_existing_assignment_blocks_same_day(self, engine, employees, day_shift, weekday_store, make_assignment):
        busy = make_assignment("emp-1", MONDAY, "09:00", "13:00", store_id="store-2")

        result = run(engine, employees, [day_shift], [weekday_store], existing_assignments=[busy])

        assert [a.employee_id for a in result.assignments] == ["emp-2"]
        assert result.summary.rejections[ConstraintType.DOUBLE_BOOKING] == 1

    def test_unavailable_dates_are_honoured(self, engine, employees, day_shift, weekday_store):
        preferences = {"emp-1": EmployeePreference("emp-1", unavailable_dates={MONDAY})}

        result = run(engine, employees, [day_shift], [weekday_store], preferences=preferences)

        assert [a.employee_id for a in result.assignments] == ["emp-2"]
        assert result.summary.rejections[ConstraintType.AVAILABILITY] == 1

    def test_personal_consecutive_day_cap(self, engine, day_shift, weekday_store):
        solo = [Employee("emp-1", "Anna Rossi", store_id="store-1")]
        preferences = {"emp-1": EmployeePreference("emp-1", max_consecutive_days=2)}

        result = run(engine, solo, [day_shift], [weekday_store],
                     end=MONDAY + timedelta(days=4), preferences=preferences)

        assert sorted(a.date.weekday() for a in result.assignments) == [0, 1, 3, 4]
        assert result.summary.rejections[ConstraintType.CONSECUTIVE_DAYS] == 1

    def test_weekly_hour_ceiling(self, engine, config, day_shift, weekday_store):
        config.constraints.max_weekly_hours = 20
        solo = [Employee("emp-1", "Anna Rossi", store_id="store-1")]

        result = run(engine, solo, [day_shift], [weekday_store], end=MONDAY + timedelta(days=4))

        assert len(result.assignments) == 2
        assert result.summary.rejections[ConstraintType.HOURS_MAX] == 3
        assert result.summary.unfilled_count == 3


class TestScoring:

    @pytest.fixture
    def preference_only(self, config):
        config.weights = ScoringWeights(equity=0.0, preference=1.0, rest=0.0, experience=0.0)
        return config

    def test_preferred_shift_types_drive_choice(self, preference_only, all_week_store):
        engine = RotationEngineAgent(preference_only, verbose=False)
        catalog = [DEFAULT_SHIFT_TYPES[0], DEFAULT_SHIFT_TYPES[2]]
        employees = [
            Employee("emp-1", "Anna Rossi", store_id="store-1"),
            Employee("emp-2", "Luca Bianchi", store_id="store-1"),
        ]
        preferences = {
            "emp-1": EmployeePreference("emp-1", preferred_shift_types={"afternoon"},
                                        priority=PreferencePriority.HIGH),
            "emp-2": EmployeePreference("emp-2", preferred_shift_types={"morning-early"},
                                        priority=PreferencePriority.HIGH),
        }

        result = run(engine, employees, catalog, [all_week_store], preferences=preferences)

        placed = {a.shift_type.id: a.employee_id for a in result.assignments}
        assert placed == {"morning-early": "emp-2", "afternoon": "emp-1"}

    def test_weekend_rotation_overrides_score(self, preference_only, employees, day_shift):
        preferences = {
            "emp-1": EmployeePreference("emp-1", preferred_shift_types={"day"},
                                        priority=PreferencePriority.HIGH),
        }
        saturday = MONDAY + timedelta(days=5)

        engine = RotationEngineAgent(preference_only, verbose=False)
        rotated = run(engine, employees, [day_shift], [weekend_store()],
                      start=saturday, end=saturday + timedelta(days=1), preferences=preferences)

        preference_only.constraints.require_weekend_rotation = False
        unrotated = run(engine, employees, [day_shift], [weekend_store()],
                        start=saturday, end=saturday + timedelta(days=1), preferences=preferences)

        assert [a.employee_id for a in rotated.assignments] == ["emp-1", "emp-2"]
        assert [a.employee_id for a in unrotated.assignments] == ["emp-1", "emp-1"]

    def test_unbalanced_weights_warn_but_run(self, config, employees, day_shift, weekday_store):
        config.weights = ScoringWeights(equity=0.8, preference=0.4, rest=0.2, experience=0.1)
        engine = RotationEngineAgent(config, verbose=False)

        result = run(engine, employees, [day_shift], [weekday_store])

        assert result.ok
        assert len(result.assignments) == 1
        assert result.summary.weight_warnings
        assert result.assignments[0].rotation_score > 100

    def test_single_slot_decision_in_isolation(self, engine, config, employees, day_shift, weekday_store,
                                               make_assignment):
        accumulator = RunAccumulator([make_assignment("emp-1", MONDAY - timedelta(days=1))])
        context = RunContext(
            config=config,
            weights=config.weights,
            preferences={},
            run_timestamp=RUN_AT,
        )
        slot = Slot("store-1", MONDAY, day_shift, required=1)

        ranked = engine.rank_candidates(slot, employees, accumulator, context)
        created = engine.fill_slot(slot, employees, accumulator, context)

        assert [c.employee_id for c in ranked] == ["emp-2", "emp-1"]
        assert ranked[0].components.equity == 1.0
        assert ranked[1].components.equity == 0.0
        assert [a.employee_id for a in created] == ["emp-2"]
        assert accumulator.placed == created
