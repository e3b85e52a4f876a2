"""
Coordinator Agent - Facade over the rotation engine, compliance validator and statistics.

This module implements the central coordinator with:
- The committed schedule and its regeneration workflow
- Substitution requests and assignment confirmation
- Compliance, rotation and team queries over the committed schedule
- Performance profiling and console reporting
"""
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd
from rich.table import Table

from .base_agent import BaseAgent
from .compliance_validator import ComplianceValidatorAgent
from .rotation_engine import AssignmentResult, RotationEngineAgent
from .rotation_statistics import (
    RotationStatistics, RotationStatisticsAgent, TeamRotationSummary, weekend_rest_report
)
from benchmark import profile_function
from config import AppConfig, DEFAULT_SHIFT_TYPES, default_algorithm_config
from models.compliance import ComplianceReport
from models.constraints import RotationAlgorithmConfig
from models.employee import Employee, EmployeePreference
from models.schedule import (
    AssignmentStatus, Schedule, ShiftAssignment, SubstitutionRequest, SubstitutionStatus
)
from models.shift import ShiftType
from models.store import Store


class CoordinatorAgent(BaseAgent):
    """
    Owns the committed schedule and coordinates the specialist agents.

    Responsibilities:
    - Generate and commit rotation schedules
    - Manage substitution requests and confirmations
    - Answer compliance, statistics and team-summary queries
    - Report run results
    """

    def __init__(self,
                 stores: Sequence[Store] = (),
                 shift_types: Optional[Sequence[ShiftType]] = None,
                 config: Optional[RotationAlgorithmConfig] = None,
                 app_config: Optional[AppConfig] = None,
                 assignments: Iterable[ShiftAssignment] = ()):
        self.app_config = app_config or AppConfig.load()
        if self.app_config.file_logging:
            BaseAgent.setup_file_logging(self.app_config.log_dir)

        super().__init__("Coordinator", verbose=self.app_config.verbose)

        verbose = self.app_config.verbose
        self.config = config or default_algorithm_config()
        self.engine = RotationEngineAgent(self.config, self.app_config.engine, verbose=verbose)
        self.validator = ComplianceValidatorAgent(self.app_config.labor, verbose=verbose)
        self.statistics = RotationStatisticsAgent(self.config, verbose=verbose)

        self.stores: Dict[str, Store] = {s.id: s for s in stores}
        self.shift_types: List[ShiftType] = list(shift_types if shift_types is not None else DEFAULT_SHIFT_TYPES)
        self.schedule = Schedule(list(assignments))
        self.preferences: Dict[str, EmployeePreference] = {}
        self.substitutions: Dict[str, SubstitutionRequest] = {}
        self.last_result: Optional[AssignmentResult] = None

    # ==================== Configuration ====================

    def update_config(self, config: RotationAlgorithmConfig) -> None:
        """Replace the algorithm configuration used by subsequent runs."""
        self.config = config
        self.engine.config = config
        self.statistics.config = config
        for warning in config.weight_warnings():
            self.log(f"⚠️ {warning}", "warning")

    def set_preference(self, preference: EmployeePreference) -> None:
        self.preferences[preference.employee_id] = preference

    # ==================== Generation ====================

    def execute(self, **kwargs) -> AssignmentResult:
        return self.generate_rotation_schedule(**kwargs)

    @profile_function
    def generate_rotation_schedule(self,
                                   employees: Sequence[Employee],
                                   start_date: date,
                                   end_date: date,
                                   store_id: Optional[str] = None,
                                   run_timestamp: Optional[datetime] = None) -> AssignmentResult:
        """
        Generate a schedule for the period and commit it.

        Committed assignments of the target employees inside [start_date, end_date]
        are replaced by the new ones. When the run is refused or produces nothing
        the committed schedule is left untouched.

        Args:
            employees: Employee registry
            start_date: First day
            end_date: Last day (inclusive)
            store_id: Optional single store to schedule
            run_timestamp: Recorded as assigned_at on new assignments

        Returns:
            The engine result
        """
        self._log_phase(f"ROTATION {start_date} → {end_date} ({store_id or 'all stores'})")

        target_ids = {
            e.id for e in employees
            if e.is_active and (store_id is None or e.store_id == store_id)
        }
        replaced = [
            a for a in self.schedule.get_assignments_in_range(start_date, end_date)
            if a.employee_id in target_ids
        ]
        replaced_ids = {a.id for a in replaced}
        kept = [a for a in self.schedule if a.id not in replaced_ids]

        result = self.engine.execute(
            employees=employees,
            shift_types=self.shift_types,
            start_date=start_date,
            end_date=end_date,
            stores=list(self.stores.values()),
            existing_assignments=kept,
            store_id=store_id,
            preferences=self.preferences,
            run_timestamp=run_timestamp,
        )
        self.last_result = result

        if not result.ok:
            self.log(f"❌ Generation refused: {result.reason.value}", "error")
            return result
        if not result.assignments:
            self.log("⚠️ No assignments generated; committed schedule unchanged", "warning")
            return result

        for assignment in replaced:
            self.schedule.remove_assignment(assignment)
        self.schedule.extend(result.assignments)

        self.log(
            f"✓ Replaced {len(replaced)} assignments with {len(result.assignments)} new ones "
            f"({len(self.schedule)} committed)",
            "success"
        )
        return result

    # ==================== Substitutions ====================

    def _get_assignment(self, assignment_id: str) -> ShiftAssignment:
        assignment = self.schedule.get(assignment_id)
        if assignment is None:
            raise ValueError(f"Unknown assignment: {assignment_id}")
        return assignment

    def _get_request(self, request_id: str) -> SubstitutionRequest:
        request = self.substitutions.get(request_id)
        if request is None:
            raise ValueError(f"Unknown substitution request: {request_id}")
        return request

    def create_substitution_request(self,
                                    assignment_id: str,
                                    requested_by: str,
                                    reason: str = "",
                                    proposed_substitute: Optional[str] = None,
                                    at: Optional[datetime] = None) -> SubstitutionRequest:
        """Open a pending request and flag the assignment as requested_change."""
        assignment = self._get_assignment(assignment_id)
        if assignment.status == AssignmentStatus.SUBSTITUTED:
            raise ValueError(f"Assignment {assignment_id} has already been substituted")

        request = SubstitutionRequest(
            id=f"sub-{len(self.substitutions) + 1:04d}",
            original_assignment_id=assignment_id,
            requested_by=requested_by,
            requested_at=at or datetime.now(),
            reason=reason,
            proposed_substitute=proposed_substitute,
        )
        self.substitutions[request.id] = request
        assignment.status = AssignmentStatus.REQUESTED_CHANGE

        self.log(f"Substitution {request.id} opened for {assignment} by {requested_by}")
        return request

    def approve_substitution(self, request_id: str, approver: str,
                             at: Optional[datetime] = None) -> SubstitutionRequest:
        """
        Approve a pending request.

        With a proposed substitute the assignment is handed over: its employee
        becomes the substitute and its status becomes substituted.

        Raises:
            ValueError: If the request is not pending, or the substitute already
                works that date or would be left short of the minimum rest
        """
        request = self._get_request(request_id)
        assignment = self._get_assignment(request.original_assignment_id)
        if request.proposed_substitute and request.status == SubstitutionStatus.PENDING:
            self._check_substitute(request.proposed_substitute, assignment)
        request.approve(approver, at or datetime.now())

        if request.proposed_substitute:
            previous = assignment.employee_id
            assignment.employee_id = request.proposed_substitute
            assignment.status = AssignmentStatus.SUBSTITUTED
            self.schedule.reindex_employee(assignment, previous)
            self.log(
                f"✓ {request.id} approved by {approver}: {previous} → {request.proposed_substitute} "
                f"on {assignment.date}",
                "success"
            )
        else:
            self.log(f"✓ {request.id} approved by {approver} (no substitute proposed)", "success")
        return request

    def _check_substitute(self, employee_id: str, assignment: ShiftAssignment) -> None:
        if self.schedule.is_employee_assigned(employee_id, assignment.date):
            raise ValueError(f"{employee_id} is already assigned on {assignment.date}")

        min_rest = timedelta(hours=self.config.constraints.min_rest_hours)
        for gap in self.schedule.get_rest_gaps(employee_id, assignment.start, assignment.end):
            if gap is not None and gap < min_rest:
                raise ValueError(
                    f"{employee_id} would rest {gap.total_seconds() / 3600:.1f}h "
                    f"around {assignment.id}, minimum is {self.config.constraints.min_rest_hours}h"
                )

    def reject_substitution(self, request_id: str, approver: str, notes: str = "",
                            at: Optional[datetime] = None) -> SubstitutionRequest:
        request = self._get_request(request_id)
        assignment = self._get_assignment(request.original_assignment_id)
        request.reject(approver, at or datetime.now(), notes)
        if assignment.status == AssignmentStatus.REQUESTED_CHANGE:
            assignment.status = AssignmentStatus.ASSIGNED
        self.log(f"{request.id} rejected by {approver}", "warning")
        return request

    def complete_substitution(self, request_id: str) -> SubstitutionRequest:
        request = self._get_request(request_id)
        request.complete()
        return request

    def pending_substitutions(self) -> List[SubstitutionRequest]:
        return [r for r in self.substitutions.values() if r.status == SubstitutionStatus.PENDING]

    def confirm_assignment(self, assignment_id: str, at: Optional[datetime] = None) -> ShiftAssignment:
        assignment = self._get_assignment(assignment_id)
        assignment.confirm(at or datetime.now())
        return assignment

    # ==================== Queries ====================

    def compliance_report(self, employee_id: str, week_start: date,
                          store_id: Optional[str] = None) -> ComplianceReport:
        """Weekly compliance report over the committed schedule."""
        return self.validator.execute(
            employee_id=employee_id,
            week_start=week_start,
            assignments=self.schedule.get_assignments_by_employee(employee_id),
            store=self.stores.get(store_id) if store_id else None,
        )

    def audit_compliance(self, week_start: date,
                         employee_ids: Optional[Iterable[str]] = None) -> List[ComplianceReport]:
        """Compliance reports for every scheduled employee in the week."""
        self._log_phase(f"COMPLIANCE AUDIT week of {week_start}")
        week_end = week_start + timedelta(days=6)
        # Adjacent days are included so rest across the week boundary is measured
        window = self.schedule.get_assignments_in_range(
            week_start - timedelta(days=7), week_end + timedelta(days=1)
        )
        if employee_ids is None:
            employee_ids = {
                a.employee_id for a in window if week_start <= a.date <= week_end
            }
        return self.validator.audit_week(week_start, window, employee_ids, self.stores)

    def rotation_statistics(self, employee_id: str, start: date, end: date) -> Optional[RotationStatistics]:
        return self.statistics.execute(
            assignments=self.schedule, start=start, end=end, employee_id=employee_id
        )

    def team_rotation_summary(self, start: date, end: date) -> TeamRotationSummary:
        return self.statistics.execute(assignments=self.schedule, start=start, end=end)

    def weekend_rest_report(self, employees: Sequence[Employee], start: date, end: date) -> pd.DataFrame:
        return weekend_rest_report(employees, self.schedule, start, end)

    # ==================== Reporting ====================

    def _log_phase(self, phase_name: str) -> None:
        self.log(f"{'─' * 50}")
        self.log(f"📍 {phase_name}")
        self.log(f"{'─' * 50}")

    def print_run_summary(self, result: Optional[AssignmentResult] = None) -> None:
        """Render the per-employee counts and unfilled slots of a run."""
        result = result or self.last_result
        if result is None:
            self.log("No run to summarise", "warning")
            return
        if not result.ok:
            self.log(f"Run refused: {result.reason.value}", "error")
            return

        summary = result.summary
        table = Table(title=f"Rotation run: {len(result.assignments)} assignments, "
                            f"equity {summary.equity_score}/100")
        table.add_column("Employee", style="cyan")
        table.add_column("Shifts", justify="right")
        table.add_column("Hours", justify="right")
        table.add_column("Avg score", justify="right")

        for employee_id, count in sorted(summary.counts_per_employee.items()):
            own = [a for a in result.assignments if a.employee_id == employee_id]
            hours = sum(a.net_hours for a in own)
            scores = [a.rotation_score for a in own if a.rotation_score is not None]
            avg = f"{sum(scores) / len(scores):.1f}" if scores else "-"
            table.add_row(employee_id, str(count), f"{hours:.1f}", avg)
        self.console.print(table)

        if summary.unfilled_slots:
            self.log(
                f"⚠️ {summary.unfilled_count} slots understaffed "
                f"({summary.missing_positions} positions missing)",
                "warning"
            )
            for slot in summary.unfilled_slots:
                self.log(
                    f"   • {slot.store_id} {slot.date} {slot.shift_type_id}: "
                    f"{slot.filled}/{slot.required}",
                    "warning"
                )
        for warning in summary.weight_warnings:
            self.log(f"⚠️ {warning}", "warning")
