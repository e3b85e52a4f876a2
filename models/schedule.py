"""
Shift assignment, substitution request and schedule index models.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .shift import ShiftType


class AssignmentStatus(Enum):
    """Lifecycle of an assignment: assigned -> confirmed | requested_change | substituted."""
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    REQUESTED_CHANGE = "requested_change"
    SUBSTITUTED = "substituted"


@dataclass
class ShiftAssignment:
    """
    An employee placed on a shift on a specific date.

    The embedded shift_type is a value copy taken at creation time.

    Attributes:
        id: Unique assignment id
        employee_id: Assigned employee
        shift_id: Identifier of the concrete shift (date + shift type)
        date: Working date
        shift_type: Snapshot of the catalog entry
        status: Lifecycle status
        assigned_by: Actor that created the assignment
        assigned_at: Creation timestamp
        confirmed_at: Set when the employee confirms
        rotation_score: Fit score computed at assignment time (0-100)
        store_id: Store the shift is worked at
    """
    id: str
    employee_id: str
    shift_id: str
    date: date
    shift_type: ShiftType
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    assigned_by: str = "manual"
    assigned_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    rotation_score: Optional[float] = None
    store_id: Optional[str] = None

    @property
    def start(self) -> datetime:
        return self.shift_type.start_on(self.date)

    @property
    def end(self) -> datetime:
        return self.shift_type.end_on(self.date)

    @property
    def net_hours(self) -> float:
        return self.shift_type.net_hours

    def confirm(self, at: datetime) -> None:
        if self.status != AssignmentStatus.ASSIGNED:
            raise ValueError(f"Assignment {self.id} cannot be confirmed from status '{self.status.value}'")
        self.status = AssignmentStatus.CONFIRMED
        self.confirmed_at = at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "shift_id": self.shift_id,
            "date": self.date.isoformat(),
            "shift_type": self.shift_type.to_dict(),
            "status": self.status.value,
            "assigned_by": self.assigned_by,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "rotation_score": self.rotation_score,
            "store_id": self.store_id,
        }

    def __str__(self) -> str:
        return (
            f"{self.employee_id} → {self.shift_type.name} "
            f"on {self.date.strftime('%a %d/%m')}"
        )

    def __hash__(self):
        return hash(self.id)


class SubstitutionStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


@dataclass
class SubstitutionRequest:
    """
    Request to hand an assignment over to someone else.

    Attributes:
        id: Request id
        original_assignment_id: Assignment to be substituted
        requested_by: Employee asking for the change
        requested_at: When the request was made
        reason: Why the change is requested
        status: pending -> approved | rejected, approved -> completed
        proposed_substitute: Employee proposed to take the shift
        approved_by: Manager who approved
        approved_at: Approval timestamp
        notes: Free text
    """
    id: str
    original_assignment_id: str
    requested_by: str
    requested_at: datetime
    reason: str = ""
    status: SubstitutionStatus = SubstitutionStatus.PENDING
    proposed_substitute: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    notes: str = ""

    def _require(self, expected: SubstitutionStatus, action: str) -> None:
        if self.status != expected:
            raise ValueError(
                f"Substitution {self.id} cannot be {action} from status '{self.status.value}'"
            )

    def approve(self, approver: str, at: datetime) -> None:
        self._require(SubstitutionStatus.PENDING, "approved")
        self.status = SubstitutionStatus.APPROVED
        self.approved_by = approver
        self.approved_at = at

    def reject(self, approver: str, at: datetime, notes: str = "") -> None:
        self._require(SubstitutionStatus.PENDING, "rejected")
        self.status = SubstitutionStatus.REJECTED
        self.approved_by = approver
        self.approved_at = at
        if notes:
            self.notes = notes

    def complete(self) -> None:
        self._require(SubstitutionStatus.APPROVED, "completed")
        self.status = SubstitutionStatus.COMPLETED


@dataclass
class Schedule:
    """
    Indexed collection of assignments.

    Used both for the committed schedule and as the running view of one engine
    run (committed + placed so far).
    """
    assignments: List[ShiftAssignment] = field(default_factory=list)

    # Indexes for fast lookup
    _by_date: Dict[date, List[ShiftAssignment]] = field(default_factory=lambda: defaultdict(list))
    _by_employee: Dict[str, List[ShiftAssignment]] = field(default_factory=lambda: defaultdict(list))
    _by_id: Dict[str, ShiftAssignment] = field(default_factory=dict)

    def __post_init__(self):
        initial, self.assignments = self.assignments, []
        for assignment in initial:
            self.add_assignment(assignment)

    def add_assignment(self, assignment: ShiftAssignment) -> None:
        self.assignments.append(assignment)
        self._by_date[assignment.date].append(assignment)
        self._by_employee[assignment.employee_id].append(assignment)
        self._by_id[assignment.id] = assignment

    def extend(self, assignments: Iterable[ShiftAssignment]) -> None:
        for assignment in assignments:
            self.add_assignment(assignment)

    def remove_assignment(self, assignment: ShiftAssignment) -> bool:
        if self._by_id.get(assignment.id) is not assignment:
            return False
        self.assignments.remove(assignment)
        self._by_date[assignment.date].remove(assignment)
        self._by_employee[assignment.employee_id].remove(assignment)
        del self._by_id[assignment.id]
        return True

    def reindex_employee(self, assignment: ShiftAssignment, previous_employee_id: str) -> None:
        """Move an assignment to its new employee after a substitution."""
        self._by_employee[previous_employee_id].remove(assignment)
        self._by_employee[assignment.employee_id].append(assignment)

    def get(self, assignment_id: str) -> Optional[ShiftAssignment]:
        return self._by_id.get(assignment_id)

    def get_assignments_by_date(self, target_date: date) -> List[ShiftAssignment]:
        return list(self._by_date.get(target_date, []))

    def get_assignments_by_employee(self, employee_id: str) -> List[ShiftAssignment]:
        return list(self._by_employee.get(employee_id, []))

    def get_assignments_in_range(self, start: date, end: date,
                                 employee_id: Optional[str] = None) -> List[ShiftAssignment]:
        """Assignments with start <= date <= end, ordered by shift start."""
        source = self._by_employee.get(employee_id, []) if employee_id else self.assignments
        return sorted(
            (a for a in source if start <= a.date <= end),
            key=lambda a: (a.start, a.employee_id, a.id)
        )

    def is_employee_assigned(self, employee_id: str, target_date: date) -> bool:
        return any(a.date == target_date for a in self._by_employee.get(employee_id, []))

    def get_work_dates(self, employee_id: str) -> Set[date]:
        return {a.date for a in self._by_employee.get(employee_id, [])}

    def get_rest_gaps(self, employee_id: str, start: datetime,
                      end: datetime) -> Tuple[Optional[timedelta], Optional[timedelta]]:
        """
        Rest around a prospective shift.

        Returns:
            (gap since the nearest earlier shift end, gap until the nearest later
            shift start); None where there is no such shift. Overlapping shifts
            produce a zero gap.
        """
        before: Optional[timedelta] = None
        after: Optional[timedelta] = None

        for a in self._by_employee.get(employee_id, []):
            if a.end <= start:
                gap = start - a.end
                before = gap if before is None else min(before, gap)
            elif a.start >= end:
                gap = a.start - end
                after = gap if after is None else min(after, gap)
            else:
                return timedelta(0), timedelta(0)

        return before, after

    def get_last_shift_end(self, employee_id: str, before: datetime) -> Optional[datetime]:
        """End of the employee's last shift finishing at or before a moment."""
        ends = [a.end for a in self._by_employee.get(employee_id, []) if a.end <= before]
        return max(ends) if ends else None

    def get_consecutive_days(self, employee_id: str, target_date: date) -> int:
        """Length of the working-day run that would include target_date."""
        work_dates = self.get_work_dates(employee_id)
        consecutive = 1

        check_date = target_date - timedelta(days=1)
        while check_date in work_dates:
            consecutive += 1
            check_date -= timedelta(days=1)

        check_date = target_date + timedelta(days=1)
        while check_date in work_dates:
            consecutive += 1
            check_date += timedelta(days=1)

        return consecutive

    def get_employee_hours(self, employee_id: str, week_start: date) -> float:
        """Net hours worked in the 7 days from week_start."""
        week_end = week_start + timedelta(days=6)
        return sum(
            a.net_hours for a in self._by_employee.get(employee_id, [])
            if week_start <= a.date <= week_end
        )

    def count_in_window(self, employee_id: str, start: date, end: date) -> int:
        """Assignments with start <= date < end."""
        return sum(1 for a in self._by_employee.get(employee_id, []) if start <= a.date < end)

    def has_weekend_in_window(self, employee_id: str, start: date, end: date) -> bool:
        """Whether the employee worked a Saturday or Sunday with start <= date < end."""
        return any(
            start <= a.date < end and a.date.weekday() >= 5
            for a in self._by_employee.get(employee_id, [])
        )

    def summary(self) -> dict:
        total_hours = sum(a.net_hours for a in self.assignments)
        dates = [a.date for a in self.assignments]

        return {
            "total_assignments": len(self.assignments),
            "unique_employees": len({a.employee_id for a in self.assignments}),
            "total_hours": round(total_hours, 2),
            "date_range": f"{min(dates)} to {max(dates)}" if dates else "-",
        }

    def __len__(self) -> int:
        return len(self.assignments)

    def __iter__(self):
        return iter(list(self.assignments))
