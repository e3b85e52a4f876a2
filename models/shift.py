"""
Shift type catalog models.

A ShiftType is an immutable, time-boxed template (e.g. "morning-early",
07:00 - 15:00). Assignments embed a copy of the ShiftType they were created
from, so catalog edits never alter historical assignments.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional


# Break rule applied when a shift type does not declare its own break
DEFAULT_BREAK_MINUTES = 30
BREAK_THRESHOLD_HOURS = 5.0


def parse_hhmm(value: str) -> time:
    """
    Parse a local wall-clock time in HH:MM format.

    Raises:
        ValueError: If the value is not a valid HH:MM string
    """
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid HH:MM time: {value!r}") from e


def minutes_of_day(t: time) -> int:
    """Minutes elapsed since midnight."""
    return t.hour * 60 + t.minute


def overlap_minutes(start_a: time, end_a: time, start_b: time, end_b: time) -> int:
    """Length of the intersection of two same-day intervals, in minutes."""
    start = max(minutes_of_day(start_a), minutes_of_day(start_b))
    end = min(minutes_of_day(end_a), minutes_of_day(end_b))
    return max(0, end - start)


class ShiftCategory(Enum):
    """Time-of-day category of a shift."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"

    @classmethod
    def from_start_time(cls, start: time) -> "ShiftCategory":
        """Derive a category from the hour a shift starts."""
        if start.hour < 12:
            return cls.MORNING
        if start.hour < 17:
            return cls.AFTERNOON
        if start.hour < 22:
            return cls.EVENING
        return cls.NIGHT


@dataclass(frozen=True)
class ShiftType:
    """
    Immutable catalog entry describing a shift template.

    Attributes:
        id: Stable identifier (e.g. "morning-early")
        name: Display name
        start_time: Local start time
        end_time: Local end time (same day, after start_time)
        category: Morning/afternoon/evening/night
        difficulty: 1 (easy) to 5 (demanding)
        required_staff: Default headcount for a slot of this type
        break_minutes: Explicit unpaid break; None applies the default rule
    """
    id: str
    name: str
    start_time: time
    end_time: time
    category: ShiftCategory
    difficulty: int = 1
    required_staff: int = 1
    break_minutes: Optional[int] = None

    def __post_init__(self):
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Shift type '{self.id}': end time {self.end_time:%H:%M} "
                f"must be after start time {self.start_time:%H:%M}"
            )
        if not 1 <= self.difficulty <= 5:
            raise ValueError(f"Shift type '{self.id}': difficulty must be 1-5, got {self.difficulty}")
        if self.required_staff < 0:
            raise ValueError(f"Shift type '{self.id}': required staff cannot be negative")
        if self.break_minutes is not None and self.break_minutes < 0:
            raise ValueError(f"Shift type '{self.id}': break cannot be negative")

    @classmethod
    def from_hhmm(cls, id: str, name: str, start: str, end: str,
                  category: Optional[ShiftCategory] = None, **kwargs) -> "ShiftType":
        """Build a shift type from HH:MM strings, inferring the category if omitted."""
        start_time = parse_hhmm(start)
        return cls(
            id=id,
            name=name,
            start_time=start_time,
            end_time=parse_hhmm(end),
            category=category or ShiftCategory.from_start_time(start_time),
            **kwargs
        )

    @property
    def duration_minutes(self) -> int:
        return minutes_of_day(self.end_time) - minutes_of_day(self.start_time)

    @property
    def duration_hours(self) -> float:
        """Gross duration in hours."""
        return self.duration_minutes / 60

    @property
    def effective_break_minutes(self) -> int:
        if self.break_minutes is not None:
            return self.break_minutes
        if self.duration_hours > BREAK_THRESHOLD_HOURS:
            return DEFAULT_BREAK_MINUTES
        return 0

    @property
    def net_hours(self) -> float:
        """Paid hours: duration minus break."""
        return max(0, self.duration_minutes - self.effective_break_minutes) / 60

    def start_on(self, day: date) -> datetime:
        return datetime.combine(day, self.start_time)

    def end_on(self, day: date) -> datetime:
        return datetime.combine(day, self.end_time)

    def overlap_with(self, open_time: time, close_time: time) -> timedelta:
        """How long this shift overlaps an opening interval."""
        return timedelta(minutes=overlap_minutes(
            self.start_time, self.end_time, open_time, close_time
        ))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "category": self.category.value,
            "difficulty": self.difficulty,
            "required_staff": self.required_staff,
            "break_minutes": self.break_minutes,
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.start_time:%H:%M}-{self.end_time:%H:%M})"
