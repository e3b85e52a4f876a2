from datetime import timedelta

import pytest

from agents.compliance_validator import ComplianceValidatorAgent, generate_weekly_report
from config import LaborRules
from models.compliance import ComplianceStatus, ViolationSeverity, ViolationType

from conftest import MONDAY


def day(offset):
    return MONDAY + timedelta(days=offset)


class TestDailyRest:

    def test_shrinking_rest_over_four_days(self, make_assignment):
        week = [
            make_assignment("emp-1", day(0), "09:00", "17:00"),
            make_assignment("emp-1", day(1), "09:00", "17:00"),
            make_assignment("emp-1", day(2), "06:00", "14:00"),
            make_assignment("emp-1", day(3), "00:00", "08:00"),
        ]

        report = generate_weekly_report("emp-1", MONDAY, week)

        daily = [v for v in report.violations if v.violation_type == ViolationType.DAILY_REST]
        assert len(daily) == 1
        assert daily[0].affected_date == day(3)
        assert daily[0].severity == ViolationSeverity.CRITICAL
        assert daily[0].measured_value == 10.0
        assert daily[0].shortfall == 1.0
        assert [(c.date, c.rest_hours, c.has_minimum_rest) for c in report.daily_rest] == [
            (day(0), 16.0, True),
            (day(1), 13.0, True),
            (day(2), 10.0, False),
            (day(3), 10.0, False),
        ]
        assert report.status == ComplianceStatus.MAJOR_VIOLATIONS
        assert report.score == 75.0

    def test_exactly_eleven_hours_is_compliant(self, make_assignment):
        week = [
            make_assignment("emp-1", day(0), "09:00", "17:00"),
            make_assignment("emp-1", day(1), "04:00", "12:00"),
        ]

        report = generate_weekly_report("emp-1", MONDAY, week)

        assert report.is_compliant
        assert report.daily_rest[0].rest_hours == 11.0

    def test_just_under_eleven_hours_is_critical(self, make_assignment):
        week = [
            make_assignment("emp-1", day(0), "09:00", "17:00"),
            make_assignment("emp-1", day(1), "03:54", "12:00"),
        ]

        report = generate_weekly_report("emp-1", MONDAY, week)

        assert len(report.critical_violations) == 1
        violation = report.critical_violations[0]
        assert violation.measured_value == 10.9
        assert violation.shortfall == pytest.approx(0.1)
        assert violation.regulation == "Art. 15 CCNL Commercio"

    def test_rest_from_previous_week_is_measured(self, make_assignment):
        shifts = [
            make_assignment("emp-1", day(-1), "14:00", "22:00"),
            make_assignment("emp-1", day(0), "06:00", "14:00"),
        ]

        report = generate_weekly_report("emp-1", MONDAY, shifts)

        assert report.critical_violations[0].affected_date == MONDAY
        assert report.daily_rest[0].rest_hours == 8.0

    def test_other_employees_are_ignored(self, make_assignment):
        shifts = [
            make_assignment("emp-1", day(0), "09:00", "17:00"),
            make_assignment("emp-2", day(1), "00:00", "08:00"),
        ]

        report = generate_weekly_report("emp-1", MONDAY, shifts)

        assert report.is_compliant
        assert len(report.daily_rest) == 1
        assert report.daily_rest[0].rest_hours == 24.0


class TestWeeklyRest:

    def test_empty_week(self):
        report = generate_weekly_report("emp-1", MONDAY, [])

        assert report.is_compliant
        assert report.score == 100.0
        assert report.weekly_rest.longest_rest_hours == 168.0
        assert report.daily_rest == []

    def test_five_day_week_keeps_weekend_rest(self, make_assignment):
        week = [make_assignment("emp-1", day(n)) for n in range(5)]

        report = generate_weekly_report("emp-1", MONDAY, week)

        assert report.is_compliant
        assert report.weekly_rest.longest_rest_hours == 55.0

    def test_six_day_week_is_short_of_weekly_rest(self, make_assignment):
        week = [make_assignment("emp-1", day(n)) for n in range(6)]

        report = generate_weekly_report("emp-1", MONDAY, week)

        assert [v.violation_type for v in report.violations] == [ViolationType.WEEKLY_REST]
        assert report.weekly_rest.longest_rest_hours == 31.0
        assert report.violations[0].shortfall == 4.0


class TestConsecutiveDays:

    def test_seven_days_in_a_row(self, make_assignment):
        week = [make_assignment("emp-1", day(n)) for n in range(7)]

        report = generate_weekly_report("emp-1", MONDAY, week)

        types = {v.violation_type for v in report.violations}
        assert types == {ViolationType.WEEKLY_REST, ViolationType.CONSECUTIVE_DAYS}
        consecutive = next(v for v in report.violations if v.violation_type == ViolationType.CONSECUTIVE_DAYS)
        assert consecutive.measured_value == 7.0
        assert consecutive.affected_date == day(6)
        assert report.score == 50.0

    def test_run_started_in_previous_week_counts(self, make_assignment):
        shifts = [make_assignment("emp-1", day(n)) for n in range(-3, 4)]

        report = generate_weekly_report("emp-1", MONDAY, shifts)

        assert any(v.violation_type == ViolationType.CONSECUTIVE_DAYS for v in report.violations)

    def test_report_exposes_run_length_and_limit(self, make_assignment):
        week = [make_assignment("emp-1", day(n)) for n in range(7)]

        report = generate_weekly_report("emp-1", MONDAY, week)

        assert report.consecutive_days_worked == 7
        assert report.max_consecutive_days == 6
        assert report.week_end == day(6)
        assert report.summary()["week_end"] == day(6).isoformat()
        assert report.summary()["consecutive_days_worked"] == 7

    def test_limit_follows_the_rules_applied(self, make_assignment):
        week = [make_assignment("emp-1", day(n)) for n in range(5)]

        report = generate_weekly_report("emp-1", MONDAY, week, rules=LaborRules(max_consecutive_days=4))

        assert report.consecutive_days_worked == 5
        assert report.max_consecutive_days == 4
        assert ViolationType.CONSECUTIVE_DAYS in {v.violation_type for v in report.violations}


class TestStoreHours:

    def test_short_overlap_is_a_warning(self, make_assignment, weekday_store):
        shifts = [make_assignment("emp-1", day(0), "17:30", "22:00")]

        report = generate_weekly_report("emp-1", MONDAY, shifts, store=weekday_store)

        assert report.status == ComplianceStatus.MINOR_VIOLATIONS
        assert report.score == 90.0
        assert len(report.warnings) == 1
        assert report.warnings[0].violation_type == ViolationType.STORE_HOURS

    def test_shift_on_closed_day_is_critical(self, make_assignment, weekday_store):
        shifts = [make_assignment("emp-1", day(6), "09:00", "17:00")]

        report = generate_weekly_report("emp-1", MONDAY, shifts, store=weekday_store)

        assert report.status == ComplianceStatus.MAJOR_VIOLATIONS
        assert report.critical_violations[0].violation_type == ViolationType.STORE_HOURS

    def test_store_checks_are_skipped_without_store(self, make_assignment):
        shifts = [make_assignment("emp-1", day(6), "09:00", "17:00")]

        assert generate_weekly_report("emp-1", MONDAY, shifts).is_compliant


class TestRules:

    def test_custom_rules(self, make_assignment):
        rules = LaborRules(daily_rest_hours=8.0, critical_penalty=40.0)
        week = [
            make_assignment("emp-1", day(0), "09:00", "17:00"),
            make_assignment("emp-1", day(1), "03:00", "11:00"),
        ]

        report = generate_weekly_report("emp-1", MONDAY, week, rules=rules)

        assert report.is_compliant
        assert rules.penalty_for(ViolationSeverity.CRITICAL) == 40.0
        assert rules.penalty_for(ViolationSeverity.WARNING) == 10.0


class TestValidatorAgent:

    @pytest.fixture
    def validator(self):
        return ComplianceValidatorAgent(verbose=False)

    def test_execute_counts_as_an_execution(self, validator, make_assignment):
        report = validator.safe_execute(
            employee_id="emp-1",
            week_start=MONDAY,
            assignments=[make_assignment("emp-1", day(0))],
        )

        assert report.is_compliant
        assert validator.get_metrics()["executions"] == 1

    def test_audit_week_reports_every_employee(self, validator, make_assignment, weekday_store):
        shifts = [
            make_assignment("emp-2", day(0), "09:00", "17:00"),
            make_assignment("emp-2", day(1), "03:00", "11:00"),
            make_assignment("emp-1", day(2), "09:00", "17:00"),
        ]

        reports = validator.audit_week(MONDAY, shifts, stores={"store-1": weekday_store})

        assert [r.employee_id for r in reports] == ["emp-1", "emp-2"]
        assert reports[0].is_compliant
        assert not reports[1].is_compliant

    def test_audit_week_includes_idle_employees_when_named(self, validator, make_assignment):
        reports = validator.audit_week(
            MONDAY, [make_assignment("emp-1", day(0))], employee_ids=["emp-1", "emp-3"]
        )

        assert [r.employee_id for r in reports] == ["emp-1", "emp-3"]
        assert reports[1].weekly_rest.longest_rest_hours == 168.0
