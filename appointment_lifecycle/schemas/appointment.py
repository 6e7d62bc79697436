import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date, time
from uuid import UUID

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment."""
    doctor_id: UUID = Field(..., description="Doctor ID")
    hospital_id: UUID = Field(..., description="Hospital ID")
    appointment_date: date = Field(..., description="Appointment date (YYYY-MM-DD)")
    appointment_time: time = Field(..., description="Appointment time (HH:MM)")
    reason: str = Field(..., min_length=10, max_length=500)
    patient_notes: str | None = Field(None, max_length=1000, description="Optional notes")

    @field_validator("appointment_date", mode="before")
    @classmethod
    def check_date_pattern(cls, value):
        if isinstance(value, str) and not DATE_PATTERN.match(value):
            raise ValueError("appointment_date must be YYYY-MM-DD")
        return value

    @field_validator("appointment_time", mode="before")
    @classmethod
    def check_time_pattern(cls, value):
        if isinstance(value, str) and not TIME_PATTERN.match(value):
            raise ValueError("appointment_time must be HH:MM")
        return value

    @field_validator("appointment_time")
    @classmethod
    def check_minute_granularity(cls, value: time) -> time:
        if value.second or value.microsecond:
            raise ValueError("appointment_time must have minute granularity")
        return value.replace(tzinfo=None)

    @field_validator("reason")
    @classmethod
    def check_reason_not_blank(cls, value: str) -> str:
        if len(value.strip()) < 10:
            raise ValueError("reason must contain at least 10 characters")
        return value


class DoctorDecision(BaseModel):
    """Schema for approving or rejecting an appointment."""
    doctor_notes: str | None = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    """Schema for cancelling as an authenticated party or with a token."""
    reason: str | None = Field(None, max_length=500)
    token: str | None = Field(None, max_length=32)


class PublicCancelRequest(BaseModel):
    """Schema for cancelling through the emailed link."""
    token: str = Field(..., min_length=1, max_length=32)
    reason: str | None = Field(None, max_length=500)


class CheckInRequest(BaseModel):
    """Schema for a geo check-in attempt."""
    latitude: float
    longitude: float


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    hospital_id: UUID
    appointment_date: date
    appointment_time: time
    reason: str
    patient_notes: str | None = None
    doctor_notes: str | None = None
    status: str
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    geo_verified: bool
    distance_meters: int | None = None
    reminder_one_hour_sent: bool
    reminder_fifteen_min_sent: bool
    created_at: datetime
    updated_at: datetime


class BookingResponse(AppointmentResponse):
    """Booking result; the patient keeps the token for link cancellation."""
    cancellation_token: str | None = None


class CheckInResponse(BaseModel):
    """Schema for the outcome of a geo check-in."""
    verified: bool
    distance_meters: int
    max_distance_meters: int
    status: str


class Location(BaseModel):
    latitude: float
    longitude: float


class GeoStatusResponse(BaseModel):
    """Schema for an appointment's geo verification state."""
    appointment_id: UUID
    geo_verified: bool
    geo_check_at: datetime | None = None
    distance_meters: int | None = None
    patient_location: Location | None = None
    hospital_location: Location
    hospital_name: str
    max_distance_meters: int
