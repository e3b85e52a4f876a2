"""
Compliance Validator Agent - Audits an employee's week against CCNL Commercio rest rules.

generate_weekly_report() is a pure function of the assignments it is given and
can be used on its own, e.g. to audit manually entered shifts. The agent wraps
it with logging and batch auditing.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .base_agent import BaseAgent
from config import LaborRules
from models.compliance import (
    CCNLViolation, ComplianceReport, DailyRestCheck,
    ViolationSeverity, ViolationType, WeeklyRestCheck
)
from models.schedule import ShiftAssignment
from models.store import Store

DEFAULT_RULES = LaborRules()
NO_ADJACENT_SHIFT_HOURS = 24.0


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _shift_bounds_by_day(assignments: Iterable[ShiftAssignment]) -> Dict[date, Tuple[datetime, datetime]]:
    """Earliest start and latest end for each worked date."""
    bounds: Dict[date, Tuple[datetime, datetime]] = {}
    for a in assignments:
        if a.date in bounds:
            first_start, last_end = bounds[a.date]
            bounds[a.date] = (min(first_start, a.start), max(last_end, a.end))
        else:
            bounds[a.date] = (a.start, a.end)
    return bounds


def generate_weekly_report(employee_id: str,
                           week_start: date,
                           assignments: Iterable[ShiftAssignment],
                           rules: LaborRules = DEFAULT_RULES,
                           store: Optional[Store] = None) -> ComplianceReport:
    """
    Audit one employee's week.

    Args:
        employee_id: Employee to audit; assignments of others are ignored
        week_start: First day of the 7-day window
        assignments: The employee's assignments (may extend beyond the week)
        rules: Labour-rule constants
        store: When given, shifts are also checked against its opening hours

    Returns:
        ComplianceReport with violations, per-day rest and weekly rest
    """
    own = sorted((a for a in assignments if a.employee_id == employee_id), key=lambda a: a.start)
    report = ComplianceReport(employee_id=employee_id, week_start=week_start)
    week_end = week_start + timedelta(days=6)
    bounds = _shift_bounds_by_day(own)

    _check_daily_rest(report, bounds, week_start, week_end, rules)
    _check_weekly_rest(report, own, week_start, rules)
    _check_consecutive_days(report, set(bounds), week_start, week_end, rules)
    if store is not None:
        _check_store_hours(report, own, store, week_start, week_end, rules)

    return report


def _check_daily_rest(report: ComplianceReport,
                      bounds: Dict[date, Tuple[datetime, datetime]],
                      week_start: date, week_end: date,
                      rules: LaborRules) -> None:
    """Rest between consecutive worked days, plus one entry per worked day of the week."""
    required_minutes = int(round(rules.daily_rest_hours * 60))
    gaps: Dict[date, int] = {}

    for day in sorted(bounds):
        previous = day - timedelta(days=1)
        if previous not in bounds:
            continue
        gap = _minutes(bounds[day][0] - bounds[previous][1])
        gaps[day] = gap

        if week_start <= day <= week_end and gap < required_minutes:
            measured = round(gap / 60, 2)
            report.add_violation(CCNLViolation(
                violation_type=ViolationType.DAILY_REST,
                severity=ViolationSeverity.CRITICAL,
                description=(
                    f"Only {measured:g}h rest between {previous} and {day} "
                    f"(minimum {rules.daily_rest_hours:g}h)"
                ),
                regulation=rules.daily_rest_article,
                suggestion=(
                    f"Move the shift on {day} later or end the shift on {previous} earlier "
                    f"by at least {rules.daily_rest_hours - measured:.1f}h"
                ),
                affected_date=day,
                measured_value=measured,
                required_value=rules.daily_rest_hours,
            ), rules.penalty_for(ViolationSeverity.CRITICAL))

    for day in sorted(d for d in bounds if week_start <= d <= week_end):
        adjacent = [g for g in (gaps.get(day), gaps.get(day + timedelta(days=1))) if g is not None]
        rest_hours = round(min(adjacent) / 60, 2) if adjacent else NO_ADJACENT_SHIFT_HOURS
        report.daily_rest.append(DailyRestCheck(
            date=day,
            rest_hours=rest_hours,
            has_minimum_rest=min(adjacent) >= required_minutes if adjacent else True,
        ))


def _check_weekly_rest(report: ComplianceReport,
                       assignments: Sequence[ShiftAssignment],
                       week_start: date, rules: LaborRules) -> None:
    """Longest uninterrupted span inside the week; the window edges bound it."""
    window_start = datetime.combine(week_start, datetime.min.time())
    window_end = window_start + timedelta(days=7)

    intervals = sorted(
        (max(a.start, window_start), min(a.end, window_end))
        for a in assignments
        if a.end > window_start and a.start < window_end
    )

    longest = timedelta(0)
    cursor = window_start
    for start, end in intervals:
        if start > cursor:
            longest = max(longest, start - cursor)
        cursor = max(cursor, end)
    longest = max(longest, window_end - cursor)

    longest_hours = round(_minutes(longest) / 60, 2)
    report.weekly_rest = WeeklyRestCheck(
        longest_rest_hours=longest_hours,
        required_hours=rules.weekly_rest_hours,
    )

    if not report.weekly_rest.is_compliant:
        report.add_violation(CCNLViolation(
            violation_type=ViolationType.WEEKLY_REST,
            severity=ViolationSeverity.CRITICAL,
            description=(
                f"Longest weekly rest is {longest_hours:g}h "
                f"(minimum {rules.weekly_rest_hours:g}h consecutive)"
            ),
            regulation=rules.weekly_rest_article,
            suggestion="Schedule a full day off adjacent to an 11h daily rest",
            affected_date=week_start,
            measured_value=longest_hours,
            required_value=rules.weekly_rest_hours,
        ), rules.penalty_for(ViolationSeverity.CRITICAL))


def _check_consecutive_days(report: ComplianceReport, work_dates: set,
                            week_start: date, week_end: date,
                            rules: LaborRules) -> None:
    """Longest working-day run that touches the week."""
    longest, run_end = 0, None

    for day in sorted(work_dates):
        if day - timedelta(days=1) in work_dates:
            continue
        length = 1
        while day + timedelta(days=length) in work_dates:
            length += 1
        last = day + timedelta(days=length - 1)
        if last >= week_start and day <= week_end and length > longest:
            longest, run_end = length, last

    report.consecutive_days_worked = longest
    report.max_consecutive_days = rules.max_consecutive_days
    if longest > rules.max_consecutive_days:
        report.add_violation(CCNLViolation(
            violation_type=ViolationType.CONSECUTIVE_DAYS,
            severity=ViolationSeverity.CRITICAL,
            description=(
                f"{longest} consecutive working days ending {run_end} "
                f"(maximum {rules.max_consecutive_days})"
            ),
            regulation=rules.consecutive_days_article,
            suggestion=f"Give a rest day within the first {rules.max_consecutive_days} days of the run",
            affected_date=run_end,
            measured_value=float(longest),
            required_value=float(rules.max_consecutive_days),
        ), rules.penalty_for(ViolationSeverity.CRITICAL))


def _check_store_hours(report: ComplianceReport,
                       assignments: Sequence[ShiftAssignment],
                       store: Store, week_start: date, week_end: date,
                       rules: LaborRules) -> None:
    """Shifts on closed days are critical; barely overlapping shifts are warnings."""
    for a in assignments:
        if not week_start <= a.date <= week_end:
            continue

        hours = store.effective_hours(a.date)
        if hours is None:
            report.add_violation(CCNLViolation(
                violation_type=ViolationType.STORE_HOURS,
                severity=ViolationSeverity.CRITICAL,
                description=f"{a.shift_type.name} on {a.date} while {store.name} is closed",
                regulation=rules.store_hours_article,
                suggestion="Remove the shift or move it to an opening day",
                affected_date=a.date,
            ), rules.penalty_for(ViolationSeverity.CRITICAL))
            continue

        overlap = _minutes(a.shift_type.overlap_with(hours.open_time, hours.close_time))
        if overlap < rules.min_store_overlap_minutes:
            report.add_violation(CCNLViolation(
                violation_type=ViolationType.STORE_HOURS,
                severity=ViolationSeverity.WARNING,
                description=(
                    f"{a.shift_type.name} on {a.date} overlaps {store.name} opening hours "
                    f"by only {overlap} minutes"
                ),
                regulation=rules.store_hours_article,
                suggestion=(
                    f"Align the shift with {hours.open_time:%H:%M}-{hours.close_time:%H:%M}"
                ),
                affected_date=a.date,
            ), rules.penalty_for(ViolationSeverity.WARNING))


class ComplianceValidatorAgent(BaseAgent):
    """
    Agent responsible for labour-rule audits.

    Responsibilities:
    - Check daily rest between consecutive working days
    - Check weekly rest inside each week
    - Check consecutive working days
    - Optionally check shifts against store opening hours
    """

    def __init__(self, rules: Optional[LaborRules] = None, verbose: bool = True):
        super().__init__("ComplianceValidator", verbose=verbose)
        self.rules = rules or DEFAULT_RULES

    def execute(self,
                employee_id: str,
                week_start: date,
                assignments: Iterable[ShiftAssignment],
                store: Optional[Store] = None,
                **kwargs) -> ComplianceReport:
        """
        Produce the weekly compliance report for one employee.

        Args:
            employee_id: Employee to audit
            week_start: First day of the week
            assignments: Assignments to audit
            store: Optional store for opening-hours checks

        Returns:
            ComplianceReport
        """
        report = generate_weekly_report(employee_id, week_start, assignments, self.rules, store)

        if report.is_compliant:
            self.log(f"{employee_id} week of {week_start} is compliant ✓", "success")
        else:
            self.log(str(report), "warning")
            for violation in report.violations:
                self.log(f"  {violation}", "debug")
        return report

    def audit_week(self, week_start: date,
                   assignments: Sequence[ShiftAssignment],
                   employee_ids: Optional[Iterable[str]] = None,
                   stores: Optional[Dict[str, Store]] = None) -> List[ComplianceReport]:
        """
        Audit every employee with assignments (or the given ids) for one week.

        Each report is produced through safe_execute(); an employee whose audit
        fails is skipped until the agent's error threshold is reached.
        """
        by_employee: Dict[str, List[ShiftAssignment]] = defaultdict(list)
        for a in assignments:
            by_employee[a.employee_id].append(a)

        ids = sorted(employee_ids) if employee_ids is not None else sorted(by_employee)
        reports = []
        for employee_id in ids:
            own = by_employee.get(employee_id, [])
            store = self._store_for(own, week_start, stores)
            report = self.safe_execute(
                employee_id=employee_id,
                week_start=week_start,
                assignments=own,
                store=store,
            )
            if report is not None:
                reports.append(report)

        flagged = sum(1 for r in reports if not r.is_compliant)
        self.log(
            f"Audited {len(reports)} employees for week of {week_start}: {flagged} with violations",
            "warning" if flagged else "success"
        )
        return reports

    @staticmethod
    def _store_for(assignments: Sequence[ShiftAssignment], week_start: date,
                   stores: Optional[Dict[str, Store]]) -> Optional[Store]:
        """The store the employee works at that week, when it is unambiguous."""
        if not stores:
            return None
        week_end = week_start + timedelta(days=6)
        store_ids = {a.store_id for a in assignments if week_start <= a.date <= week_end and a.store_id}
        if len(store_ids) != 1:
            return None
        return stores.get(store_ids.pop())
