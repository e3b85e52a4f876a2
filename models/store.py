"""
Store calendar models.
"""
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Dict, List, Optional

from .shift import minutes_of_day, parse_hhmm


class Weekday(Enum):
    """Days of the week, ordered as date.weekday()."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]

    @property
    def is_weekend(self) -> bool:
        return self in (Weekday.SATURDAY, Weekday.SUNDAY)


@dataclass(frozen=True)
class OpeningHours:
    """Opening interval of a store on one day."""
    open_time: time
    close_time: time

    def __post_init__(self):
        if self.close_time <= self.open_time:
            raise ValueError(
                f"Closing time {self.close_time:%H:%M} must be after opening time {self.open_time:%H:%M}"
            )

    @classmethod
    def parse(cls, open_time: str, close_time: str) -> "OpeningHours":
        return cls(parse_hhmm(open_time), parse_hhmm(close_time))

    @property
    def minutes(self) -> int:
        return minutes_of_day(self.close_time) - minutes_of_day(self.open_time)


@dataclass
class ClosureDay:
    """
    A specific date on which the regular weekday calendar does not apply.

    Attributes:
        date: The affected date
        reason: Why the store is closed (holiday, inventory, ...)
        is_full_day: Closed for the whole day
        custom_hours: Reduced hours when is_full_day is False
    """
    date: date
    reason: str = ""
    is_full_day: bool = True
    custom_hours: Optional[OpeningHours] = None


@dataclass
class Store:
    """
    Represents a retail location.

    Attributes:
        id: Unique store identifier
        name: Store name
        is_active: Whether the store is currently operating
        opening_hours: Opening interval per weekday; missing or None means closed
        closure_days: Date-specific closures overriding the weekday calendar
    """
    id: str
    name: str
    is_active: bool = True
    opening_hours: Dict[Weekday, Optional[OpeningHours]] = field(default_factory=dict)
    closure_days: List[ClosureDay] = field(default_factory=list)

    def has_opening_hours(self) -> bool:
        """Whether the store is open on at least one weekday."""
        return any(hours is not None for hours in self.opening_hours.values())

    def get_closure(self, day: date) -> Optional[ClosureDay]:
        for closure in self.closure_days:
            if closure.date == day:
                return closure
        return None

    def effective_hours(self, day: date) -> Optional[OpeningHours]:
        """
        Get the opening interval that applies on a specific date.

        Closure days take precedence over the weekday calendar.

        Returns:
            The opening interval, or None if the store is closed that day
        """
        closure = self.get_closure(day)
        if closure is not None:
            if closure.is_full_day or closure.custom_hours is None:
                return None
            return closure.custom_hours
        return self.opening_hours.get(Weekday.from_date(day))

    def is_open(self, day: date) -> bool:
        return self.effective_hours(day) is not None

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"
