"""Appointment store - transactional persistence for the lifecycle engine.

Every method runs in its own short transaction and hands back detached
``Appointment`` instances. Updates are guarded by the ``revision`` column:
a write only lands when the row still carries the revision the caller read.
"""

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from appointment_lifecycle.config import Settings
from appointment_lifecycle.errors import (
    ConcurrentModification,
    SlotConflict,
    StoreUnavailable,
)
from appointment_lifecycle.models.appointment import (
    Appointment,
    AppointmentStatus,
    GeoCheckAttempt,
    utcnow,
)

# Columns a lifecycle command may change after creation
MUTABLE_FIELDS = (
    "patient_notes",
    "doctor_notes",
    "status",
    "cancellation_token",
    "cancellation_reason",
    "cancelled_by",
    "patient_latitude",
    "patient_longitude",
    "geo_check_at",
    "distance_meters",
    "geo_verified",
    "reminder_one_hour_sent",
    "reminder_fifteen_min_sent",
)


def _slot_conflict(appointment: Appointment) -> SlotConflict:
    return SlotConflict(
        "This time slot is already booked. Please choose another slot.",
        {
            "doctor_id": str(appointment.doctor_id),
            "appointment_date": appointment.appointment_date.isoformat(),
            "appointment_time": appointment.appointment_time.strftime("%H:%M"),
        },
    )


class AppointmentStore:
    """Async SQLAlchemy implementation of the appointment store contract."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    async def find_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Get an appointment by ID."""
        try:
            async with self.session_factory() as session:
                return await session.get(Appointment, appointment_id)
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc

    async def find_conflicting(
        self,
        doctor_id: UUID,
        appointment_date: date,
        appointment_time: time,
        statuses: Iterable[AppointmentStatus],
    ) -> Appointment | None:
        """Return an appointment holding the slot in one of ``statuses``, if any."""
        query = select(Appointment).where(
            and_(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == appointment_date,
                Appointment.appointment_time == appointment_time,
                Appointment.status.in_([AppointmentStatus(s).value for s in statuses]),
            )
        ).limit(1)
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc

    async def list_for(
        self,
        *,
        patient_id: UUID | None = None,
        doctor_id: UUID | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        """Get appointments of a patient or doctor, newest slot first."""
        query = select(Appointment)
        if patient_id is not None:
            query = query.where(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.where(Appointment.doctor_id == doctor_id)
        if status is not None:
            query = query.where(Appointment.status == status.value)

        query = query.order_by(
            Appointment.appointment_date.desc(), Appointment.appointment_time.desc()
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc

    async def create(self, appointment: Appointment) -> Appointment:
        """Insert a new appointment; the active-slot index rejects double-booking."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(appointment)
        except IntegrityError as exc:
            raise _slot_conflict(appointment) from exc
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc
        return appointment

    async def update(
        self,
        appointment: Appointment,
        expected_revision: int,
        attempt: GeoCheckAttempt | None = None,
    ) -> Appointment:
        """Write the mutable fields of ``appointment`` if the row is still at
        ``expected_revision``. A geo check-in attempt, when given, is recorded
        in the same transaction.
        """
        now = utcnow()
        values = {field: getattr(appointment, field) for field in MUTABLE_FIELDS}
        values["revision"] = expected_revision + 1
        values["updated_at"] = now

        statement = (
            update(Appointment)
            .where(
                Appointment.id == appointment.id,
                Appointment.revision == expected_revision,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(statement)
                    if result.rowcount != 1:
                        raise ConcurrentModification(appointment.id, expected_revision)
                    if attempt is not None:
                        session.add(attempt)
        except IntegrityError as exc:
            raise _slot_conflict(appointment) from exc
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc

        appointment.revision = expected_revision + 1
        appointment.updated_at = now
        return appointment

    async def list_geo_attempts(self, appointment_id: UUID) -> list[GeoCheckAttempt]:
        """Get every recorded check-in attempt for an appointment, oldest first."""
        query = (
            select(GeoCheckAttempt)
            .where(GeoCheckAttempt.appointment_id == appointment_id)
            .order_by(GeoCheckAttempt.checked_at)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc

    async def scan_due_reminders(self, now: datetime, batch: int) -> list[Appointment]:
        """Approved appointments still ahead of ``now``, up to the widest reminder
        horizon, with at least one reminder flag still unset.
        """
        tz = self.settings.timezone
        local_now = now.astimezone(tz)
        horizon = (
            now + timedelta(minutes=self.settings.reminder_one_hour_window_min)
        ).astimezone(tz).date()

        query = (
            select(Appointment)
            .where(
                and_(
                    Appointment.status == AppointmentStatus.APPROVED.value,
                    or_(
                        Appointment.appointment_date > local_now.date(),
                        and_(
                            Appointment.appointment_date == local_now.date(),
                            Appointment.appointment_time > local_now.time(),
                        ),
                    ),
                    Appointment.appointment_date <= horizon,
                    or_(
                        Appointment.reminder_one_hour_sent.is_(False),
                        Appointment.reminder_fifteen_min_sent.is_(False),
                    ),
                )
            )
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
            .limit(batch)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc

    async def scan_due_no_shows(self, now: datetime, batch: int) -> list[Appointment]:
        """Approved, unverified appointments whose grace period has run out."""
        tz = self.settings.timezone
        cutoff = (now - timedelta(minutes=self.settings.no_show_grace_minutes)).astimezone(tz)
        today = now.astimezone(tz).date()

        # Slots shortly before midnight expire after the date has rolled over
        query = (
            select(Appointment)
            .where(
                and_(
                    Appointment.status == AppointmentStatus.APPROVED.value,
                    Appointment.geo_verified.is_(False),
                    Appointment.appointment_date >= today - timedelta(days=1),
                    or_(
                        Appointment.appointment_date < cutoff.date(),
                        and_(
                            Appointment.appointment_date == cutoff.date(),
                            Appointment.appointment_time <= cutoff.time(),
                        ),
                    ),
                )
            )
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
            .limit(batch)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except OperationalError as exc:
            raise StoreUnavailable("Appointment store unavailable") from exc
