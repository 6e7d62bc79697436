"""
Pytest configuration for appointment lifecycle tests
"""

import math
import os
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from types import SimpleNamespace
from typing import Any
from uuid import uuid4

# Point the module-level engine at SQLite BEFORE importing any app modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOGFIRE_TOKEN"] = ""
os.environ["RESEND_API_KEY"] = ""

import logfire
import pytest
import pytest_asyncio

from appointment_lifecycle.config import Settings
from appointment_lifecycle.database import close_db, create_engine_for, create_session_factory, init_db
from appointment_lifecycle.errors import TransportError
from appointment_lifecycle.main import build_components
from appointment_lifecycle.models import Doctor, Hospital, User, UserRole
from appointment_lifecycle.schemas.appointment import AppointmentCreate
from appointment_lifecycle.services.geo import EARTH_RADIUS_METERS
from appointment_lifecycle.services.lifecycle import Actor
from appointment_lifecycle.services.notifications import NotificationKind, Recipient

logfire.configure(send_to_logfire=False, console=False)

HOSPITAL_LAT = 51.5007
HOSPITAL_LON = -0.1246

BOOKED_AT = datetime(2025, 3, 8, 12, 0, tzinfo=timezone.utc)
SLOT_DATE = date(2025, 3, 10)  # a Monday
SLOT_TIME = time(10, 0)


def on_slot_day(hour: int, minute: int) -> datetime:
    return datetime(2025, 3, 10, hour, minute, tzinfo=timezone.utc)


def point_north(meters: int, lat: float = HOSPITAL_LAT, lon: float = HOSPITAL_LON) -> tuple[float, float]:
    """A point due north of (lat, lon) whose floored distance is ``meters``."""
    return lat + math.degrees((meters + 0.5) / EARTH_RADIUS_METERS), lon


@dataclass
class SentEmail:
    kind: NotificationKind
    recipient: Recipient
    params: dict[str, Any]


class RecordingEmailSink:
    """In-memory sink; kinds in ``failing`` raise TransportError."""

    def __init__(self):
        self.sent: list[SentEmail] = []
        self.failing: set[NotificationKind] = set()

    async def dispatch(self, kind, recipient, params):
        if kind in self.failing:
            raise TransportError(f"{kind.value} transport down")
        self.sent.append(SentEmail(kind, recipient, params))

    def kinds(self) -> list[NotificationKind]:
        return [email.kind for email in self.sent]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        booking_timezone="UTC",
        max_distance_meters=500,
        min_cancel_lead_minutes=15,
        no_show_grace_minutes=15,
        scheduler_enabled=False,
        resend_api_key="",
        logfire_token="",
        frontend_url="https://clinic.example",
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'appointments.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def sink():
    return RecordingEmailSink()


@pytest.fixture
def components(settings, session_factory, sink):
    return build_components(settings, session_factory, sink)


@pytest.fixture
def lifecycle(components):
    return components.engine


@pytest.fixture
def store(components):
    return components.store


@pytest_asyncio.fixture
async def catalog(session_factory):
    """One hospital, two doctors working there, two patients."""
    hospital = Hospital(
        id=uuid4(),
        name="St Thomas' Hospital",
        address="Westminster Bridge Rd, London",
        latitude=HOSPITAL_LAT,
        longitude=HOSPITAL_LON,
        is_active=True,
    )
    patient = User(id=uuid4(), name="Pat One", email="p1@example.com", role=UserRole.PATIENT.value)
    other_patient = User(id=uuid4(), name="Pat Two", email="p2@example.com", role=UserRole.PATIENT.value)
    doctor_user = User(id=uuid4(), name="Dana Doc", email="d1@example.com", role=UserRole.DOCTOR.value)
    other_doctor_user = User(id=uuid4(), name="Drew Doc", email="d2@example.com", role=UserRole.DOCTOR.value)
    doctor = Doctor(
        id=uuid4(),
        user_id=doctor_user.id,
        hospital_id=hospital.id,
        specialization="Neurology",
        available_from=time(8, 0),
        available_to=time(18, 0),
        is_active=True,
    )
    other_doctor = Doctor(
        id=uuid4(),
        user_id=other_doctor_user.id,
        hospital_id=hospital.id,
        specialization="Cardiology",
        available_from=time(8, 0),
        available_to=time(18, 0),
        is_active=True,
    )

    async with session_factory() as session:
        async with session.begin():
            session.add_all([hospital, patient, other_patient, doctor_user, other_doctor_user])
            await session.flush()
            session.add_all([doctor, other_doctor])

    return SimpleNamespace(
        hospital=hospital,
        patient=patient,
        other_patient=other_patient,
        doctor_user=doctor_user,
        doctor=doctor,
        other_doctor_user=other_doctor_user,
        other_doctor=other_doctor,
        patient_actor=Actor(patient.id, UserRole.PATIENT),
        other_patient_actor=Actor(other_patient.id, UserRole.PATIENT),
        doctor_actor=Actor(doctor_user.id, UserRole.DOCTOR),
        other_doctor_actor=Actor(other_doctor_user.id, UserRole.DOCTOR),
    )


def booking(catalog, appointment_date=SLOT_DATE, appointment_time=SLOT_TIME, **overrides):
    data = {
        "doctor_id": catalog.doctor.id,
        "hospital_id": catalog.hospital.id,
        "appointment_date": appointment_date,
        "appointment_time": appointment_time,
        "reason": "chronic headache follow-up",
    }
    data.update(overrides)
    return AppointmentCreate(**data)


@pytest.fixture
def make_approved(lifecycle, catalog):
    """Book and approve an appointment, returning the approved row."""

    async def _make(appointment_date=SLOT_DATE, appointment_time=SLOT_TIME, actor=None):
        appointment = await lifecycle.book(
            actor or catalog.patient_actor,
            booking(catalog, appointment_date, appointment_time),
            now=BOOKED_AT,
        )
        return await lifecycle.approve(catalog.doctor_actor, appointment.id)

    return _make
