from appointment_lifecycle.models.appointment import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
    CancelledBy,
    GeoCheckAttempt,
)
from appointment_lifecycle.models.user import User, UserRole
from appointment_lifecycle.models.doctor import Doctor
from appointment_lifecycle.models.hospital import Hospital

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Appointment",
    "AppointmentStatus",
    "CancelledBy",
    "GeoCheckAttempt",
    "User",
    "UserRole",
    "Doctor",
    "Hospital",
]
