"""
Shared pytest fixtures for the availability sync tests.

Every test gets its own file-backed SQLite database (worker threads need a shared file, not
:memory:), a session factory bound to it, seed helpers for the directory tables, a recording fake
slot source and a fixed clock.
"""
import os
import threading
from datetime import date, datetime, time, timezone
from typing import Callable

import pytest

# Configure the app for tests before any caresync module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EHR_USE_MOCK"] = "false"
os.environ["AVAILABILITY_SYNC_ENABLED"] = "false"

from sqlalchemy.orm import sessionmaker  # noqa: E402

import caresync.models  # noqa: E402,F401
from caresync.core.errors import EhrError  # noqa: E402
from caresync.db.base import Base  # noqa: E402
from caresync.db.session import build_engine  # noqa: E402
from caresync.models import AppointmentType, EhrDepartment, Institution, Provider  # noqa: E402
from caresync.services.ehr.types import ProviderScheduleRequest, ScheduleSlot  # noqa: E402

TIME_ZONE = "America/New_York"
# Monday 2020-04-27 10:00 in New York (EDT, UTC-4)
FIXED_NOW = datetime(2020, 4, 27, 14, 0, tzinfo=timezone.utc)
TODAY = date(2020, 4, 27)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'caresync_test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# CLOCK
# ============================================================================


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


# ============================================================================
# SEED DATA
# ============================================================================


class Seeder:
    """Inserts directory rows with sensible defaults and commits each one."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def _add(self, obj):
        session = self._session_factory()
        try:
            session.add(obj)
            session.commit()
        finally:
            session.close()
        return obj

    def institution(self, institution_id: str = "inst-1", **kwargs) -> str:
        values = {
            "name": f"Institution {institution_id}",
            "time_zone": TIME_ZONE,
            "ehr_user_id": "SYNCUSER",
            "ehr_user_id_type": "External",
            "appointment_find_enabled": False,
            "appointment_find_cache_expiration_seconds": 300,
        }
        values.update(kwargs)
        self._add(Institution(institution_id=institution_id, **values))
        return institution_id

    def provider(self, institution_id: str = "inst-1", provider_id: str | None = None, **kwargs) -> str:
        provider_id = provider_id or self._next_id("prov")
        values = {
            "name": f"Dr. {provider_id}",
            "time_zone": TIME_ZONE,
            "scheduling_system_id": "EPIC",
            "ehr_provider_id": f"E{provider_id}",
            "ehr_provider_id_type": "External",
            "slot_classification": "DURATION_MATCHED",
            "active": True,
            "created_at": FIXED_NOW,
        }
        values.update(kwargs)
        self._add(Provider(provider_id=provider_id, institution_id=institution_id, **values))
        return provider_id

    def appointment_type(self, provider_id: str, duration_in_minutes: int = 30, **kwargs) -> str:
        appointment_type_id = kwargs.pop("appointment_type_id", None) or self._next_id("apt")
        values = {
            "name": f"{duration_in_minutes}-minute visit",
            "scheduling_system_id": "EPIC",
            "ehr_visit_type_id": f"VT{duration_in_minutes}",
            "ehr_visit_type_id_type": "External",
        }
        values.update(kwargs)
        self._add(
            AppointmentType(
                appointment_type_id=appointment_type_id,
                provider_id=provider_id,
                duration_in_minutes=duration_in_minutes,
                **values,
            )
        )
        return appointment_type_id

    def department(self, provider_id: str, department_id: str = "DEP1", **kwargs) -> str:
        ehr_department_id = kwargs.pop("ehr_department_id", None) or self._next_id("dep")
        values = {"department_id_type": "External", "name": f"Department {department_id}"}
        values.update(kwargs)
        self._add(
            EhrDepartment(ehr_department_id=ehr_department_id, provider_id=provider_id, department_id=department_id, **values)
        )
        return ehr_department_id


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


# ============================================================================
# SLOT SOURCE
# ============================================================================


def slot(start: str, length: int = 30, openings: int = 1, held: str | None = None, unavailable: str | None = None):
    """slot("9:30") -> ScheduleSlot at 09:30."""
    hour, minute = (int(part) for part in start.split(":"))
    return ScheduleSlot(
        start_time=time(hour, minute),
        length_minutes=length,
        available_openings=openings,
        held_reason=held,
        unavailable_reason=unavailable,
    )


class FakeSlotSource:
    """
    Records every call. Schedule reads return `schedule` (a list, or a callable taking the request).
    Appointment find raises EhrError for dates in fail_dates and blocks on `gate` for dates in block_dates.
    """

    def __init__(
        self,
        schedule: list[ScheduleSlot] | Callable[[ProviderScheduleRequest], list[ScheduleSlot]] | None = None,
        find_response: str = '{"resourceType": "Bundle", "entry": []}',
        fail_dates: tuple[date, ...] = (),
        block_dates: tuple[date, ...] = (),
    ) -> None:
        self.schedule = schedule if schedule is not None else []
        self.find_response = find_response
        self.fail_dates = set(fail_dates)
        self.block_dates = set(block_dates)
        self.gate = threading.Event()
        self.schedule_calls: list[ProviderScheduleRequest] = []
        self.find_calls: list[tuple[datetime, datetime]] = []
        self._lock = threading.Lock()

    def get_provider_schedule(self, request: ProviderScheduleRequest) -> list[ScheduleSlot]:
        with self._lock:
            self.schedule_calls.append(request)
        if callable(self.schedule):
            return self.schedule(request)
        return list(self.schedule)

    def find_appointments(self, start_time: datetime, end_time: datetime) -> str:
        with self._lock:
            self.find_calls.append((start_time, end_time))
        day = start_time.date()
        if day in self.block_dates:
            self.gate.wait(10)
        if day in self.fail_dates:
            raise EhrError("Bad HTTP response from EHR endpoint", method="POST", url="fake://find", status_code=500)
        return self.find_response


@pytest.fixture
def slot_source() -> FakeSlotSource:
    source = FakeSlotSource()
    yield source
    source.gate.set()
