"""Appointment lifecycle engine - every appointment state change goes through here.

Commands load the appointment, check the actor and the state machine guard,
mutate a detached copy, and commit it with the revision they read. Notification
intents are collected while the command runs and dispatched only once the
store has committed, so a failing transport never undoes a transition.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from uuid import UUID, uuid4

import logfire

from appointment_lifecycle.config import Settings
from appointment_lifecycle.errors import (
    AppointmentNotFound,
    CatalogEntryNotFound,
    ConcurrentModification,
    IllegalTransition,
    NotAuthorizedForAppointment,
    SlotConflict,
    TooLateToCancel,
    ValidationFailed,
)
from appointment_lifecycle.models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    CancelledBy,
    GeoCheckAttempt,
    can_transition,
)
from appointment_lifecycle.models.doctor import Doctor
from appointment_lifecycle.models.user import UserRole
from appointment_lifecycle.schemas.appointment import (
    AppointmentCreate,
    GeoStatusResponse,
    Location,
)
from appointment_lifecycle.services.directory import Directory
from appointment_lifecycle.services.geo import haversine_meters, validate_coordinate
from appointment_lifecycle.services.notifications import (
    NotificationDispatcher,
    NotificationIntent,
    NotificationKind,
)
from appointment_lifecycle.services.store import AppointmentStore
from appointment_lifecycle.services.tokens import issue_token, tokens_match

logger = logging.getLogger(__name__)

NO_SHOW_NOTE = "Automatically cancelled — geo verification not completed within time limit"
DEFAULT_CANCEL_REASON = "Cancelled by user"
LINK_CANCEL_REASON = "Cancelled by patient via email link"
GEO_CANCEL_REASON = "Geo verification failed"

CANCELLED_BY_LABELS = {
    CancelledBy.PATIENT: "Patient",
    CancelledBy.DOCTOR: "Doctor",
    CancelledBy.PATIENT_LINK: "Patient (via email)",
    CancelledBy.SYSTEM: "System",
}


@dataclass(frozen=True)
class Actor:
    """Pre-authenticated caller identity."""
    user_id: UUID
    role: UserRole


@dataclass(frozen=True)
class GeoVerified:
    distance_meters: int
    max_distance_meters: int


@dataclass(frozen=True)
class GeoRejected:
    distance_meters: int
    max_distance_meters: int
    status: AppointmentStatus


GeoCheckResult = GeoVerified | GeoRejected


class ReminderKind(str, Enum):
    ONE_HOUR = "one_hour"
    FIFTEEN_MINUTES = "fifteen_minutes"


REMINDER_FLAGS = {
    ReminderKind.ONE_HOUR: "reminder_one_hour_sent",
    ReminderKind.FIFTEEN_MINUTES: "reminder_fifteen_min_sent",
}

REMINDER_NOTIFICATIONS = {
    ReminderKind.ONE_HOUR: NotificationKind.REMINDER_ONE_HOUR,
    ReminderKind.FIFTEEN_MINUTES: NotificationKind.REMINDER_FIFTEEN_MINUTES,
}


class AppointmentLifecycleEngine:
    """Service class for appointment lifecycle commands."""

    def __init__(
        self,
        store: AppointmentStore,
        directory: Directory,
        notifier: NotificationDispatcher,
        settings: Settings,
    ):
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.settings = settings

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        return now or datetime.now(timezone.utc)

    def _today(self, now: datetime) -> date:
        return now.astimezone(self.settings.timezone).date()

    def _instant(self, appointment: Appointment) -> datetime:
        return appointment.instant(self.settings.timezone)

    def reminder_window(self, kind: ReminderKind) -> timedelta:
        if kind is ReminderKind.ONE_HOUR:
            return timedelta(minutes=self.settings.reminder_one_hour_window_min)
        return timedelta(minutes=self.settings.reminder_fifteen_min_window_min)

    def cancel_url(self, appointment: Appointment) -> str:
        base = self.settings.frontend_url.rstrip("/")
        return f"{base}/cancel-appointment/{appointment.id}?token={appointment.cancellation_token}"

    async def _load(self, appointment_id: UUID) -> Appointment:
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    async def _doctor_for(self, actor: Actor | None) -> Doctor | None:
        if actor is None or actor.role != UserRole.DOCTOR:
            return None
        return await self.directory.get_doctor_by_user(actor.user_id)

    async def _owning_doctor(self, actor: Actor | None, appointment: Appointment) -> bool:
        doctor = await self._doctor_for(actor)
        return doctor is not None and doctor.id == appointment.doctor_id

    @staticmethod
    def _owning_patient(actor: Actor | None, appointment: Appointment) -> bool:
        return (
            actor is not None
            and actor.role == UserRole.PATIENT
            and actor.user_id == appointment.patient_id
        )

    async def _require_owning_doctor(self, actor: Actor, appointment: Appointment) -> None:
        if not await self._owning_doctor(actor, appointment):
            raise NotAuthorizedForAppointment(
                "You can only manage your own appointments",
                {"appointment_id": str(appointment.id)},
            )

    @staticmethod
    def _transition(appointment: Appointment, command: str, target: AppointmentStatus) -> None:
        if not can_transition(appointment.status_enum, target):
            raise IllegalTransition(command, appointment.status)
        appointment.status = target.value

    async def _commit(
        self,
        appointment: Appointment,
        expected_revision: int,
        intents: list[NotificationIntent],
        attempt: GeoCheckAttempt | None = None,
    ) -> Appointment:
        saved = await self.store.update(appointment, expected_revision, attempt)
        await self.notifier.dispatch_all(intents)
        return saved

    # -- patient booking ---------------------------------------------------

    async def book(
        self, actor: Actor, data: AppointmentCreate, now: datetime | None = None
    ) -> Appointment:
        """Create a PendingReview appointment and notify the doctor."""
        now = self._now(now)
        if actor.role != UserRole.PATIENT:
            raise NotAuthorizedForAppointment("Only patients can book appointments")

        doctor = await self.directory.get_doctor(data.doctor_id)
        if doctor is None or not doctor.is_active:
            raise CatalogEntryNotFound(
                "Doctor not found or inactive", {"doctor_id": str(data.doctor_id)}
            )
        if doctor.hospital_id != data.hospital_id:
            raise ValidationFailed(
                "Doctor does not work at the specified hospital",
                {"doctor_id": str(data.doctor_id), "hospital_id": str(data.hospital_id)},
            )
        hospital = await self.directory.get_hospital(data.hospital_id)
        if hospital is None or not hospital.is_active:
            raise CatalogEntryNotFound(
                "Hospital not found or inactive", {"hospital_id": str(data.hospital_id)}
            )

        self._check_booking_date(data.appointment_date, now)
        if not doctor.accepts_time(data.appointment_time):
            raise ValidationFailed(
                "Requested time is outside the doctor's available hours",
                {"appointment_time": data.appointment_time.strftime("%H:%M")},
            )

        existing = await self.store.find_conflicting(
            data.doctor_id, data.appointment_date, data.appointment_time, ACTIVE_STATUSES
        )
        if existing is not None:
            raise SlotConflict(
                "This time slot is already booked. Please choose another slot.",
                {
                    "doctor_id": str(data.doctor_id),
                    "appointment_date": data.appointment_date.isoformat(),
                    "appointment_time": data.appointment_time.strftime("%H:%M"),
                },
            )

        appointment = Appointment(
            id=uuid4(),
            patient_id=actor.user_id,
            doctor_id=data.doctor_id,
            hospital_id=data.hospital_id,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            reason=data.reason,
            patient_notes=data.patient_notes or None,
            status=AppointmentStatus.PENDING_REVIEW.value,
            cancellation_token=issue_token(),
            geo_verified=False,
            reminder_one_hour_sent=False,
            reminder_fifteen_min_sent=False,
            revision=0,
            created_at=now,
            updated_at=now,
        )
        appointment = await self.store.create(appointment)
        logfire.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            doctor_id=str(appointment.doctor_id),
            date=appointment.appointment_date.isoformat(),
            time=appointment.appointment_time.strftime("%H:%M"),
        )

        await self.notifier.dispatch_all(
            [
                NotificationIntent.for_appointment(
                    NotificationKind.APPOINTMENT_REQUESTED, appointment, reason=appointment.reason
                )
            ]
        )
        return appointment

    def _check_booking_date(self, appointment_date: date, now: datetime) -> None:
        today = self._today(now)
        days_ahead = (appointment_date - today).days
        details = {"appointment_date": appointment_date.isoformat(), "today": today.isoformat()}

        if days_ahead < self.settings.booking_lead_days_min:
            raise ValidationFailed(
                f"Appointments must be booked at least {self.settings.booking_lead_days_min} day(s) ahead",
                details,
            )
        if days_ahead > self.settings.booking_lead_days_max:
            raise ValidationFailed(
                f"Appointments cannot be booked more than {self.settings.booking_lead_days_max} days ahead",
                details,
            )
        if appointment_date.weekday() in self.settings.closed_weekday_numbers:
            raise ValidationFailed(
                f"Appointments are not available on {appointment_date.strftime('%A')}s",
                details,
            )

    # -- doctor decisions --------------------------------------------------

    async def approve(
        self, actor: Actor, appointment_id: UUID, doctor_notes: str | None = None
    ) -> Appointment:
        """PendingReview -> Approved. Repeating the approval is a no-op."""
        appointment = await self._load(appointment_id)
        await self._require_owning_doctor(actor, appointment)

        if appointment.status_enum == AppointmentStatus.APPROVED:
            return appointment
        if appointment.status_enum != AppointmentStatus.PENDING_REVIEW:
            raise IllegalTransition("approve", appointment.status)

        expected = appointment.revision
        self._transition(appointment, "approve", AppointmentStatus.APPROVED)
        if doctor_notes is not None:
            appointment.doctor_notes = doctor_notes
        if not appointment.cancellation_token:
            appointment.cancellation_token = issue_token()

        intents = [
            NotificationIntent.for_appointment(
                NotificationKind.APPOINTMENT_APPROVED,
                appointment,
                cancellation_token=appointment.cancellation_token,
                doctor_notes=appointment.doctor_notes,
            )
        ]
        saved = await self._commit(appointment, expected, intents)
        logfire.info("appointment_approved", appointment_id=str(appointment.id))
        return saved

    async def reject(
        self, actor: Actor, appointment_id: UUID, doctor_notes: str | None = None
    ) -> Appointment:
        """PendingReview -> Rejected."""
        appointment = await self._load(appointment_id)
        await self._require_owning_doctor(actor, appointment)
        if appointment.status_enum != AppointmentStatus.PENDING_REVIEW:
            raise IllegalTransition("reject", appointment.status)

        expected = appointment.revision
        self._transition(appointment, "reject", AppointmentStatus.REJECTED)
        if doctor_notes is not None:
            appointment.doctor_notes = doctor_notes

        intents = [
            NotificationIntent.for_appointment(
                NotificationKind.APPOINTMENT_REJECTED,
                appointment,
                doctor_notes=appointment.doctor_notes,
            )
        ]
        saved = await self._commit(appointment, expected, intents)
        logfire.info("appointment_rejected", appointment_id=str(appointment.id))
        return saved

    async def complete(self, actor: Actor, appointment_id: UUID) -> Appointment:
        """Approved -> Completed, only once the patient has checked in on site."""
        appointment = await self._load(appointment_id)
        await self._require_owning_doctor(actor, appointment)
        if appointment.status_enum != AppointmentStatus.APPROVED:
            raise IllegalTransition("complete", appointment.status)
        if not appointment.geo_verified:
            raise IllegalTransition(
                "complete",
                appointment.status,
                "Cannot complete an appointment before the patient's geo check-in is verified",
            )

        expected = appointment.revision
        self._transition(appointment, "complete", AppointmentStatus.COMPLETED)
        saved = await self._commit(appointment, expected, [])
        logfire.info("appointment_completed", appointment_id=str(appointment.id))
        return saved

    # -- cancellation ------------------------------------------------------

    async def cancel_by_party(
        self,
        appointment_id: UUID,
        actor: Actor | None = None,
        token: str | None = None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        """Cancel as the owning patient or doctor, or by presenting the token."""
        now = self._now(now)
        appointment = await self._load(appointment_id)

        if self._owning_patient(actor, appointment):
            cancelled_by = CancelledBy.PATIENT
        elif await self._owning_doctor(actor, appointment):
            cancelled_by = CancelledBy.DOCTOR
        elif tokens_match(appointment.cancellation_token, token):
            cancelled_by = CancelledBy.PATIENT_LINK
        else:
            raise NotAuthorizedForAppointment(
                "You can only cancel your own appointments",
                {"appointment_id": str(appointment.id)},
            )

        status = appointment.status_enum
        if status not in (AppointmentStatus.PENDING_REVIEW, AppointmentStatus.APPROVED):
            raise IllegalTransition("cancel", appointment.status)

        if status == AppointmentStatus.APPROVED:
            lead = timedelta(minutes=self.settings.min_cancel_lead_minutes)
            if self._instant(appointment) < now + lead:
                raise TooLateToCancel(
                    f"Cannot cancel less than {self.settings.min_cancel_lead_minutes} minutes "
                    "before the scheduled time. Please call the hospital directly.",
                    {"appointment_id": str(appointment.id)},
                )

        if reason is None:
            reason = LINK_CANCEL_REASON if cancelled_by is CancelledBy.PATIENT_LINK else DEFAULT_CANCEL_REASON

        expected = appointment.revision
        self._transition(appointment, "cancel", AppointmentStatus.CANCELLED)
        appointment.cancellation_reason = reason
        appointment.cancelled_by = cancelled_by.value

        saved = await self._commit(
            appointment, expected, self._cancellation_intents(appointment, reason, cancelled_by)
        )
        logfire.info(
            "appointment_cancelled",
            appointment_id=str(appointment.id),
            cancelled_by=cancelled_by.value,
        )
        return saved

    async def cancel_with_token(
        self,
        appointment_id: UUID,
        token: str,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        """Public-link cancellation: the token is the only credential."""
        if not token:
            raise ValidationFailed("Appointment token is required", {"token": token})
        return await self.cancel_by_party(appointment_id, actor=None, token=token, reason=reason, now=now)

    @staticmethod
    def _cancellation_intents(
        appointment: Appointment, reason: str, cancelled_by: CancelledBy
    ) -> list[NotificationIntent]:
        return [
            NotificationIntent.for_appointment(
                NotificationKind.CANCELLATION_CONFIRMATION_PATIENT,
                appointment,
                cancellation_token=appointment.cancellation_token,
            ),
            NotificationIntent.for_appointment(
                NotificationKind.CANCELLATION_NOTICE_DOCTOR,
                appointment,
                reason=reason,
                cancelled_by=CANCELLED_BY_LABELS[cancelled_by],
            ),
        ]

    async def confirm_cancel_request(self, actor: Actor, appointment_id: UUID) -> Appointment:
        """CancelRequested -> Cancelled, confirmed by the owning doctor."""
        appointment = await self._load(appointment_id)
        await self._require_owning_doctor(actor, appointment)
        if appointment.status_enum != AppointmentStatus.CANCEL_REQUESTED:
            raise IllegalTransition("confirm cancellation of", appointment.status)

        expected = appointment.revision
        self._transition(appointment, "confirm cancellation of", AppointmentStatus.CANCELLED)
        appointment.cancellation_reason = GEO_CANCEL_REASON
        appointment.cancelled_by = CancelledBy.DOCTOR.value

        intents = [
            NotificationIntent.for_appointment(
                NotificationKind.CANCELLATION_CONFIRMATION_PATIENT,
                appointment,
                cancellation_token=appointment.cancellation_token,
            )
        ]
        saved = await self._commit(appointment, expected, intents)
        logfire.info("appointment_cancel_request_confirmed", appointment_id=str(appointment.id))
        return saved

    async def reinstate(self, actor: Actor, appointment_id: UUID) -> Appointment:
        """CancelRequested -> Approved, if nobody has taken the slot meanwhile."""
        appointment = await self._load(appointment_id)
        await self._require_owning_doctor(actor, appointment)
        if appointment.status_enum != AppointmentStatus.CANCEL_REQUESTED:
            raise IllegalTransition("reinstate", appointment.status)

        holder = await self.store.find_conflicting(
            appointment.doctor_id,
            appointment.appointment_date,
            appointment.appointment_time,
            ACTIVE_STATUSES,
        )
        if holder is not None:
            raise SlotConflict(
                "The slot has been booked by another appointment",
                {"appointment_id": str(holder.id)},
            )

        expected = appointment.revision
        self._transition(appointment, "reinstate", AppointmentStatus.APPROVED)
        intents = [
            NotificationIntent.for_appointment(
                NotificationKind.APPOINTMENT_APPROVED,
                appointment,
                cancellation_token=appointment.cancellation_token,
                doctor_notes=appointment.doctor_notes,
            )
        ]
        saved = await self._commit(appointment, expected, intents)
        logfire.info("appointment_reinstated", appointment_id=str(appointment.id))
        return saved

    # -- geo check-in ------------------------------------------------------

    async def check_in(
        self,
        actor: Actor,
        appointment_id: UUID,
        latitude: float,
        longitude: float,
        now: datetime | None = None,
    ) -> GeoCheckResult:
        """Record a check-in attempt and verify it against the hospital geo-fence.

        A failed distance test on an unverified appointment moves it to
        CancelRequested and notifies both parties. Once verified, an appointment
        stays verified; later attempts are recorded as evidence only.
        """
        now = self._now(now)
        latitude, longitude = validate_coordinate(latitude, longitude)
        appointment = await self._load(appointment_id)

        if not self._owning_patient(actor, appointment):
            raise NotAuthorizedForAppointment(
                "You can only check in for your own appointments",
                {"appointment_id": str(appointment.id)},
            )
        if appointment.status_enum != AppointmentStatus.APPROVED:
            raise IllegalTransition("check in", appointment.status)
        today = self._today(now)
        if appointment.appointment_date != today:
            raise ValidationFailed(
                "Check-in is only allowed on the appointment day",
                {"appointment_date": appointment.appointment_date.isoformat(), "today": today.isoformat()},
            )

        hospital = await self.directory.get_hospital(appointment.hospital_id)
        if hospital is None:
            raise CatalogEntryNotFound(
                "Hospital not found", {"hospital_id": str(appointment.hospital_id)}
            )

        threshold = self.settings.max_distance_meters
        distance = haversine_meters(latitude, longitude, hospital.latitude, hospital.longitude)
        within = distance <= threshold

        expected = appointment.revision
        appointment.patient_latitude = latitude
        appointment.patient_longitude = longitude
        appointment.geo_check_at = now
        appointment.distance_meters = distance
        attempt = GeoCheckAttempt(
            id=uuid4(),
            appointment_id=appointment.id,
            latitude=latitude,
            longitude=longitude,
            distance_meters=distance,
            verified=within,
            checked_at=now,
        )

        intents: list[NotificationIntent] = []
        if within:
            appointment.geo_verified = True
        elif not appointment.geo_verified:
            intents = self._request_cancel_via_geo_fail(appointment, distance)

        await self._commit(appointment, expected, intents, attempt)
        logfire.info(
            "appointment_check_in",
            appointment_id=str(appointment.id),
            distance_meters=distance,
            verified=within,
        )
        if within:
            return GeoVerified(distance_meters=distance, max_distance_meters=threshold)
        return GeoRejected(
            distance_meters=distance,
            max_distance_meters=threshold,
            status=appointment.status_enum,
        )

    def _request_cancel_via_geo_fail(
        self, appointment: Appointment, distance: int
    ) -> list[NotificationIntent]:
        self._transition(appointment, "request cancellation of", AppointmentStatus.CANCEL_REQUESTED)
        return self._geo_cancellation_intents(appointment, distance)

    def _geo_cancellation_intents(
        self, appointment: Appointment, distance: int | None
    ) -> list[NotificationIntent]:
        params = {
            "distance_meters": distance,
            "max_distance_meters": self.settings.max_distance_meters,
        }
        return [
            NotificationIntent.for_appointment(
                NotificationKind.GEO_CANCELLATION_PATIENT, appointment, **params
            ),
            NotificationIntent.for_appointment(
                NotificationKind.GEO_CANCELLATION_DOCTOR, appointment, **params
            ),
        ]

    # -- time-driven commands ----------------------------------------------

    async def send_reminder(
        self, appointment_id: UUID, kind: ReminderKind, now: datetime | None = None
    ) -> bool:
        """Set the reminder flag and notify the patient, if the reminder is due.

        Returns False when nothing was sent: the appointment left Approved, the
        flag is already set, the instant is outside the window, or another
        process won the race to set the flag.
        """
        now = self._now(now)
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None or appointment.status_enum != AppointmentStatus.APPROVED:
            return False

        flag = REMINDER_FLAGS[kind]
        if getattr(appointment, flag):
            return False
        instant = self._instant(appointment)
        if not now < instant <= now + self.reminder_window(kind):
            return False

        expected = appointment.revision
        setattr(appointment, flag, True)
        minutes_before = int(self.reminder_window(kind).total_seconds() // 60)
        params = {"minutes_before": minutes_before}
        if kind is ReminderKind.ONE_HOUR:
            params["cancellation_token"] = appointment.cancellation_token
            params["cancel_url"] = self.cancel_url(appointment)
        intents = [
            NotificationIntent.for_appointment(REMINDER_NOTIFICATIONS[kind], appointment, **params)
        ]

        try:
            await self._commit(appointment, expected, intents)
        except ConcurrentModification:
            logger.info(f"Reminder {kind.value} for appointment {appointment_id} lost a concurrent update")
            return False
        logfire.info("appointment_reminder_sent", appointment_id=str(appointment_id), kind=kind.value)
        return True

    async def expire_no_show(self, appointment_id: UUID, now: datetime | None = None) -> bool:
        """Cancel an Approved appointment whose patient never checked in on site."""
        now = self._now(now)
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None or appointment.status_enum != AppointmentStatus.APPROVED:
            return False
        if appointment.geo_verified:
            return False
        grace = timedelta(minutes=self.settings.no_show_grace_minutes)
        if now < self._instant(appointment) + grace:
            return False

        expected = appointment.revision
        self._transition(appointment, "expire", AppointmentStatus.CANCELLED)
        appointment.cancellation_reason = NO_SHOW_NOTE
        appointment.cancelled_by = CancelledBy.SYSTEM.value

        try:
            await self._commit(
                appointment, expected, self._geo_cancellation_intents(appointment, None)
            )
        except ConcurrentModification:
            logger.info(f"No-show expiry for appointment {appointment_id} lost a concurrent update")
            return False
        logfire.info("appointment_no_show_cancelled", appointment_id=str(appointment_id))
        return True

    # -- queries -----------------------------------------------------------

    async def get_for_actor(self, actor: Actor, appointment_id: UUID) -> Appointment:
        """Get an appointment visible to its patient or doctor."""
        appointment = await self._load(appointment_id)
        if not (
            self._owning_patient(actor, appointment)
            or await self._owning_doctor(actor, appointment)
        ):
            raise NotAuthorizedForAppointment(
                "You can only view your own appointments",
                {"appointment_id": str(appointment.id)},
            )
        return appointment

    async def list_for_actor(
        self, actor: Actor, status: AppointmentStatus | None = None
    ) -> list[Appointment]:
        """Get the acting patient's or doctor's appointments."""
        if actor.role == UserRole.PATIENT:
            return await self.store.list_for(patient_id=actor.user_id, status=status)
        if actor.role == UserRole.DOCTOR:
            doctor = await self._doctor_for(actor)
            if doctor is None:
                return []
            return await self.store.list_for(doctor_id=doctor.id, status=status)
        return await self.store.list_for(status=status)

    async def geo_status(self, actor: Actor, appointment_id: UUID) -> GeoStatusResponse:
        """Geo verification state of an appointment."""
        appointment = await self.get_for_actor(actor, appointment_id)
        hospital = await self.directory.get_hospital(appointment.hospital_id)
        if hospital is None:
            raise CatalogEntryNotFound(
                "Hospital not found", {"hospital_id": str(appointment.hospital_id)}
            )

        patient_location = None
        if appointment.patient_latitude is not None and appointment.patient_longitude is not None:
            patient_location = Location(
                latitude=appointment.patient_latitude,
                longitude=appointment.patient_longitude,
            )
        return GeoStatusResponse(
            appointment_id=appointment.id,
            geo_verified=appointment.geo_verified,
            geo_check_at=appointment.geo_check_at,
            distance_meters=appointment.distance_meters,
            patient_location=patient_location,
            hospital_location=Location(latitude=hospital.latitude, longitude=hospital.longitude),
            hospital_name=hospital.name,
            max_distance_meters=self.settings.max_distance_meters,
        )
