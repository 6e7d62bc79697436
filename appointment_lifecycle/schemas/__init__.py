from appointment_lifecycle.schemas.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    BookingResponse,
    CancelRequest,
    CheckInRequest,
    CheckInResponse,
    DoctorDecision,
    GeoStatusResponse,
    Location,
    PublicCancelRequest,
)

__all__ = [
    "AppointmentCreate",
    "AppointmentResponse",
    "BookingResponse",
    "CancelRequest",
    "CheckInRequest",
    "CheckInResponse",
    "DoctorDecision",
    "GeoStatusResponse",
    "Location",
    "PublicCancelRequest",
]
