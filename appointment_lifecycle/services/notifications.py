"""
Notification dispatch for appointment lifecycle events.

The lifecycle engine never talks to an email transport directly: each command
collects ``NotificationIntent`` objects while it decides on a transition and
hands them to :class:`NotificationDispatcher` only after the store commit.
The dispatcher resolves recipients through the directory and calls the
configured :class:`EmailSink`. Transport failures are logged and dropped.
"""

import asyncio
import html
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

import logfire
import resend

from appointment_lifecycle.config import Settings
from appointment_lifecycle.errors import TransportError
from appointment_lifecycle.models.appointment import Appointment
from appointment_lifecycle.services.directory import Directory

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Every notification the lifecycle can emit."""
    APPOINTMENT_REQUESTED = "appointment_requested"
    APPOINTMENT_APPROVED = "appointment_approved"
    APPOINTMENT_REJECTED = "appointment_rejected"
    REMINDER_ONE_HOUR = "reminder_one_hour"
    REMINDER_FIFTEEN_MINUTES = "reminder_fifteen_minutes"
    GEO_CANCELLATION_PATIENT = "geo_cancellation_patient"
    GEO_CANCELLATION_DOCTOR = "geo_cancellation_doctor"
    CANCELLATION_CONFIRMATION_PATIENT = "cancellation_confirmation_patient"
    CANCELLATION_NOTICE_DOCTOR = "cancellation_notice_doctor"


# Kinds addressed to the doctor; all others go to the patient
DOCTOR_KINDS = frozenset(
    {
        NotificationKind.APPOINTMENT_REQUESTED,
        NotificationKind.GEO_CANCELLATION_DOCTOR,
        NotificationKind.CANCELLATION_NOTICE_DOCTOR,
    }
)

SUBJECTS = {
    NotificationKind.APPOINTMENT_REQUESTED: "New Appointment Request",
    NotificationKind.APPOINTMENT_APPROVED: "Appointment Approved",
    NotificationKind.APPOINTMENT_REJECTED: "Appointment Rejected",
    NotificationKind.REMINDER_ONE_HOUR: "Appointment Reminder - 60 minutes",
    NotificationKind.REMINDER_FIFTEEN_MINUTES: "Appointment Reminder - 15 minutes",
    NotificationKind.GEO_CANCELLATION_PATIENT: "Appointment Cancelled - Location Verification Failed",
    NotificationKind.GEO_CANCELLATION_DOCTOR: "Appointment Cancelled - Patient Location Verification Failed",
    NotificationKind.CANCELLATION_CONFIRMATION_PATIENT: "Appointment Cancellation Confirmed",
    NotificationKind.CANCELLATION_NOTICE_DOCTOR: "Appointment Cancelled",
}


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str


@dataclass
class NotificationIntent:
    """A notification decided inside a command, sent after commit."""

    kind: NotificationKind
    appointment_id: UUID
    patient_id: UUID
    doctor_id: UUID
    hospital_id: UUID
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_appointment(
        cls, kind: NotificationKind, appointment: Appointment, **params: Any
    ) -> "NotificationIntent":
        base = {
            "appointment_id": str(appointment.id),
            "appointment_date": appointment.appointment_date.isoformat(),
            "appointment_time": appointment.appointment_time.strftime("%H:%M"),
        }
        base.update(params)
        return cls(
            kind=kind,
            appointment_id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            hospital_id=appointment.hospital_id,
            params=base,
        )

    @property
    def to_doctor(self) -> bool:
        return self.kind in DOCTOR_KINDS


class EmailSink(Protocol):
    """Notification transport. Raises TransportError when delivery fails."""

    async def dispatch(
        self, kind: NotificationKind, recipient: Recipient, params: dict[str, Any]
    ) -> None:
        ...


class LogEmailSink:
    """Sink used when no email provider is configured: logs what would be sent."""

    async def dispatch(
        self, kind: NotificationKind, recipient: Recipient, params: dict[str, Any]
    ) -> None:
        logger.info(
            f"Email not configured, would send '{SUBJECTS[kind]}' to {recipient.email}: {params}"
        )


def render_html(kind: NotificationKind, recipient: Recipient, params: dict[str, Any]) -> str:
    """Minimal HTML body listing the notification parameters."""
    rows = "".join(
        f"<li><strong>{html.escape(str(key).replace('_', ' ').title())}:</strong> "
        f"{html.escape('N/A' if value is None else str(value))}</li>"
        for key, value in params.items()
    )
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"<h2>{html.escape(SUBJECTS[kind])}</h2>"
        f"<p>Dear {html.escape(recipient.name)},</p>"
        f"<ul>{rows}</ul>"
        "</div>"
    )


class ResendEmailSink:
    """Deliver notifications through the Resend API."""

    def __init__(self, api_key: str, from_address: str):
        resend.api_key = api_key
        self.from_address = from_address

    async def dispatch(
        self, kind: NotificationKind, recipient: Recipient, params: dict[str, Any]
    ) -> None:
        email_data = {
            "from": self.from_address,
            "to": [recipient.email],
            "subject": SUBJECTS[kind],
            "html": render_html(kind, recipient, params),
        }
        try:
            # The Resend SDK is synchronous
            response = await asyncio.to_thread(resend.Emails.send, email_data)
        except Exception as e:
            raise TransportError(f"Resend delivery to {recipient.email} failed: {e}") from e
        logger.info(f"Email sent via Resend to {recipient.email}: {response}")


def build_email_sink(settings: Settings) -> EmailSink:
    """Pick the transport for the current configuration."""
    if settings.resend_api_key:
        return ResendEmailSink(settings.resend_api_key, settings.email_from)
    return LogEmailSink()


class NotificationDispatcher:
    """Resolve recipients for intents and hand them to the email sink."""

    def __init__(self, sink: EmailSink, directory: Directory):
        self.sink = sink
        self.directory = directory

    async def _context(self, intent: NotificationIntent) -> tuple[Recipient, dict[str, Any]]:
        patient = await self.directory.get_user(intent.patient_id)
        doctor = await self.directory.get_doctor(intent.doctor_id)
        doctor_user = await self.directory.get_user(doctor.user_id) if doctor else None
        hospital = await self.directory.get_hospital(intent.hospital_id)

        params = dict(intent.params)
        params["patient_name"] = patient.name if patient else None
        params["doctor_name"] = doctor_user.name if doctor_user else None
        params["hospital_name"] = hospital.name if hospital else None

        person = doctor_user if intent.to_doctor else patient
        if person is None:
            raise TransportError(f"No recipient for {intent.kind.value} on {intent.appointment_id}")
        return Recipient(email=person.email, name=person.name), params

    async def dispatch(self, intent: NotificationIntent) -> bool:
        """Send one intent. Returns False when delivery failed."""
        try:
            recipient, params = await self._context(intent)
            await self.sink.dispatch(intent.kind, recipient, params)
        except TransportError as e:
            logger.error(f"Failed to send {intent.kind.value} for appointment {intent.appointment_id}: {e}")
            logfire.error(
                "notification_failed",
                kind=intent.kind.value,
                appointment_id=str(intent.appointment_id),
                error=str(e),
            )
            return False
        except Exception as e:
            # Lookups or the sink failing in any other way must not undo a commit
            logger.exception(f"Unexpected error sending {intent.kind.value} for appointment {intent.appointment_id}: {e}")
            return False
        return True

    async def dispatch_all(self, intents: list[NotificationIntent]) -> int:
        """Send intents in order; returns the number delivered."""
        delivered = 0
        for intent in intents:
            if await self.dispatch(intent):
                delivered += 1
        return delivered
