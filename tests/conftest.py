from datetime import date, datetime

import pytest

from agents.rotation_engine import RotationEngineAgent
from config import AppConfig, default_algorithm_config
from models.employee import Employee
from models.schedule import ShiftAssignment
from models.shift import ShiftType
from models.store import OpeningHours, Store, Weekday

MONDAY = date(2025, 1, 6)
RUN_AT = datetime(2025, 1, 1, 8, 0)


@pytest.fixture
def day_shift():
    return ShiftType.from_hhmm("day", "Giornata", "09:00", "17:00")


@pytest.fixture
def weekday_store():
    """Open Mon-Fri 09:00-18:00, closed at the weekend."""
    hours = OpeningHours.parse("09:00", "18:00")
    return Store(
        id="store-1",
        name="Centro",
        opening_hours={day: (None if day.is_weekend else hours) for day in Weekday},
    )


@pytest.fixture
def all_week_store():
    hours = OpeningHours.parse("07:00", "22:00")
    return Store(id="store-1", name="Centro", opening_hours={day: hours for day in Weekday})


@pytest.fixture
def employees():
    return [
        Employee("emp-1", "Anna Rossi", contract_hours=40, store_id="store-1"),
        Employee("emp-2", "Luca Bianchi", contract_hours=40, store_id="store-1"),
    ]


@pytest.fixture
def config():
    return default_algorithm_config()


@pytest.fixture
def engine(config):
    return RotationEngineAgent(config, verbose=False)


@pytest.fixture
def quiet_app_config():
    return AppConfig(verbose=False)


@pytest.fixture
def make_assignment():
    """Build a committed assignment from HH:MM strings."""
    def _make(employee_id, day, start="09:00", end="17:00", store_id="store-1"):
        shift_type = ShiftType.from_hhmm(f"{start}-{end}", f"{start}-{end}", start, end)
        return ShiftAssignment(
            id=f"manual-{employee_id}-{day.isoformat()}-{start}",
            employee_id=employee_id,
            shift_id=f"shift-{day.isoformat()}-{shift_type.id}",
            date=day,
            shift_type=shift_type,
            store_id=store_id,
        )
    return _make
