"""
Employee and preference models.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Set

from .store import Weekday


@dataclass
class Employee:
    """
    Represents an employee as supplied by the staff registry.

    Attributes:
        id: Unique employee identifier
        name: Full name
        contract_hours: Contracted hours per week
        fixed_hours: Guaranteed minimum hours per week
        is_active: Whether the employee can be scheduled
        store_id: Home store, if any
    """
    id: str
    name: str
    contract_hours: float = 40.0
    fixed_hours: float = 0.0
    is_active: bool = True
    store_id: Optional[str] = None

    def __hash__(self):
        return hash(self.id)

    def __str__(self) -> str:
        return f"{self.name} ({self.contract_hours:g}h)"


class PreferencePriority(Enum):
    """How strongly an employee's preferences should weigh on scoring."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def factor(self) -> float:
        return {
            PreferencePriority.LOW: 0.5,
            PreferencePriority.MEDIUM: 0.75,
            PreferencePriority.HIGH: 1.0,
        }[self]


@dataclass
class EmployeePreference:
    """
    Scheduling preferences stated by one employee.

    Attributes:
        employee_id: Owner of the preference record
        preferred_shift_types: Shift type ids the employee would like to work
        unavailable_dates: Dates the employee cannot work (hard constraint)
        max_consecutive_days: Personal cap on consecutive working days
        preferred_days_off: Weekdays the employee would rather not work
        priority: How much weight to give these preferences
        notes: Free text
    """
    employee_id: str
    preferred_shift_types: Set[str] = field(default_factory=set)
    unavailable_dates: Set[date] = field(default_factory=set)
    max_consecutive_days: Optional[int] = None
    preferred_days_off: Set[Weekday] = field(default_factory=set)
    priority: PreferencePriority = PreferencePriority.MEDIUM
    notes: str = ""

    def is_unavailable(self, day: date) -> bool:
        return day in self.unavailable_dates

    def prefers_off(self, day: date) -> bool:
        return Weekday.from_date(day) in self.preferred_days_off

    @property
    def has_shift_preferences(self) -> bool:
        return bool(self.preferred_shift_types)
