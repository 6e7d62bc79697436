"""Appointment routes - API endpoints for appointment lifecycle commands."""

from fastapi import APIRouter
from uuid import UUID

from appointment_lifecycle.api.deps import CurrentActor, Engine
from appointment_lifecycle.models.appointment import AppointmentStatus
from appointment_lifecycle.schemas.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    BookingResponse,
    CancelRequest,
    CheckInRequest,
    CheckInResponse,
    DoctorDecision,
    GeoStatusResponse,
    PublicCancelRequest,
)
from appointment_lifecycle.services.lifecycle import GeoVerified

router = APIRouter()


@router.post("/", response_model=BookingResponse, status_code=201)
async def book_appointment(appointment_data: AppointmentCreate, actor: CurrentActor, engine: Engine):
    """Book an appointment (patients only)."""
    return await engine.book(actor, appointment_data)


@router.get("/mine", response_model=list[AppointmentResponse])
async def list_my_appointments(
    actor: CurrentActor,
    engine: Engine,
    status: AppointmentStatus | None = None,
):
    """Get the caller's appointments."""
    return await engine.list_for_actor(actor, status)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(appointment_id: UUID, actor: CurrentActor, engine: Engine):
    """Get an appointment by ID."""
    return await engine.get_for_actor(actor, appointment_id)


@router.post("/{appointment_id}/approve", response_model=AppointmentResponse)
async def approve_appointment(
    appointment_id: UUID, decision: DoctorDecision, actor: CurrentActor, engine: Engine
):
    """Approve a pending appointment (owning doctor only)."""
    return await engine.approve(actor, appointment_id, decision.doctor_notes)


@router.post("/{appointment_id}/reject", response_model=AppointmentResponse)
async def reject_appointment(
    appointment_id: UUID, decision: DoctorDecision, actor: CurrentActor, engine: Engine
):
    """Reject a pending appointment (owning doctor only)."""
    return await engine.reject(actor, appointment_id, decision.doctor_notes)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(appointment_id: UUID, actor: CurrentActor, engine: Engine):
    """Mark a checked-in appointment as completed."""
    return await engine.complete(actor, appointment_id)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID, request: CancelRequest, actor: CurrentActor, engine: Engine
):
    """Cancel an appointment as its patient or doctor, or with its token."""
    return await engine.cancel_by_party(
        appointment_id, actor=actor, token=request.token, reason=request.reason
    )


@router.post("/{appointment_id}/cancel-public", response_model=AppointmentResponse)
async def cancel_appointment_public(
    appointment_id: UUID, request: PublicCancelRequest, engine: Engine
):
    """Cancel an appointment via the emailed link (no identity required)."""
    return await engine.cancel_with_token(appointment_id, request.token, request.reason)


@router.post("/{appointment_id}/check-in", response_model=CheckInResponse)
async def check_in(
    appointment_id: UUID, request: CheckInRequest, actor: CurrentActor, engine: Engine
):
    """Verify the patient's location against the hospital geo-fence."""
    result = await engine.check_in(actor, appointment_id, request.latitude, request.longitude)
    if isinstance(result, GeoVerified):
        return CheckInResponse(
            verified=True,
            distance_meters=result.distance_meters,
            max_distance_meters=result.max_distance_meters,
            status=AppointmentStatus.APPROVED.value,
        )
    return CheckInResponse(
        verified=False,
        distance_meters=result.distance_meters,
        max_distance_meters=result.max_distance_meters,
        status=result.status.value,
    )


@router.get("/{appointment_id}/geo-status", response_model=GeoStatusResponse)
async def get_geo_status(appointment_id: UUID, actor: CurrentActor, engine: Engine):
    """Get the geo verification state of an appointment."""
    return await engine.geo_status(actor, appointment_id)


@router.post("/{appointment_id}/cancel-request/confirm", response_model=AppointmentResponse)
async def confirm_cancel_request(appointment_id: UUID, actor: CurrentActor, engine: Engine):
    """Confirm the cancellation requested by a failed check-in."""
    return await engine.confirm_cancel_request(actor, appointment_id)


@router.post("/{appointment_id}/cancel-request/reinstate", response_model=AppointmentResponse)
async def reinstate_appointment(appointment_id: UUID, actor: CurrentActor, engine: Engine):
    """Put an appointment with a pending cancellation request back to approved."""
    return await engine.reinstate(actor, appointment_id)
