import uuid
from datetime import datetime, date, time, timezone, tzinfo
from enum import Enum
from sqlalchemy import (
    Boolean,
    String,
    DateTime,
    Date,
    Time,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column
from appointment_lifecycle.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppointmentStatus(str, Enum):
    """Appointment status enum."""
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCEL_REQUESTED = "cancel_requested"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that hold a (doctor, date, time) slot
ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING_REVIEW, AppointmentStatus.APPROVED})

TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}
)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING_REVIEW: frozenset(
        {AppointmentStatus.APPROVED, AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.APPROVED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.CANCEL_REQUESTED,
        }
    ),
    AppointmentStatus.CANCEL_REQUESTED: frozenset(
        {AppointmentStatus.CANCELLED, AppointmentStatus.APPROVED}
    ),
    AppointmentStatus.REJECTED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


class CancelledBy(str, Enum):
    """Who initiated a cancellation."""
    PATIENT = "patient"
    DOCTOR = "doctor"
    PATIENT_LINK = "patient_link"
    SYSTEM = "system"


class Appointment(Base):
    """Appointment model - the aggregate every lifecycle command mutates."""

    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("doctors.id"),
        nullable=False,
        index=True,
    )
    hospital_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hospitals.id"),
        nullable=False,
    )
    appointment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    appointment_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    patient_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    doctor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentStatus.PENDING_REVIEW.value,
        index=True,
    )
    cancellation_token: Mapped[str | None] = mapped_column(
        String(32),
        unique=True,
        nullable=True,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Latest geo check-in evidence
    patient_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    patient_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    geo_check_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    distance_meters: Mapped[int | None] = mapped_column(Integer, nullable=True)
    geo_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    reminder_one_hour_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_fifteen_min_sent: Mapped[bool] = mapped_column(Boolean, default=False)

    # Optimistic concurrency counter, bumped on every committed update
    revision: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    # Prevent double-booking of an active (doctor, date, time) slot
    __table_args__ = (
        Index(
            "uq_active_slot",
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status IN ('pending_review', 'approved')"),
            sqlite_where=text("status IN ('pending_review', 'approved')"),
        ),
        Index("ix_appointments_sweep", "status", "appointment_date"),
    )

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    def instant(self, tz: tzinfo) -> datetime:
        """The appointment's date and time as an aware instant in ``tz``."""
        return datetime.combine(self.appointment_date, self.appointment_time, tzinfo=tz)

    def __repr__(self) -> str:
        return f"<Appointment {self.appointment_date} {self.appointment_time} {self.status}>"


class GeoCheckAttempt(Base):
    """One row per geo check-in call, kept as evidence."""

    __tablename__ = "geo_check_attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    distance_meters: Mapped[int] = mapped_column(Integer, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<GeoCheckAttempt {self.appointment_id} {self.distance_meters}m>"
