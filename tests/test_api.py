"""
HTTP surface tests using httpx against the FastAPI app.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from appointment_lifecycle.main import app, attach


def next_open_day():
    day = datetime.now(timezone.utc).date() + timedelta(days=2)
    if day.weekday() == 6:
        day += timedelta(days=1)
    return day


def headers_for(actor):
    return {"X-User-Id": str(actor.user_id), "X-User-Role": actor.role.value}


@pytest_asyncio.fixture
async def client(components):
    attach(app, components)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def booking_payload(catalog):
    return {
        "doctor_id": str(catalog.doctor.id),
        "hospital_id": str(catalog.hospital.id),
        "appointment_date": next_open_day().isoformat(),
        "appointment_time": "10:00",
        "reason": "persistent lower back pain",
    }


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["scheduler"] == "stopped"


@pytest.mark.asyncio
async def test_booking_requires_caller_identity(client, booking_payload):
    response = await client.post("/api/appointments/", json=booking_payload)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_then_approve(client, catalog, booking_payload, sink):
    response = await client.post(
        "/api/appointments/", json=booking_payload, headers=headers_for(catalog.patient_actor)
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending_review"
    assert body["cancellation_token"]

    response = await client.post(
        f"/api/appointments/{body['id']}/approve",
        json={"doctor_notes": "Bring previous scans"},
        headers=headers_for(catalog.doctor_actor),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["doctor_notes"] == "Bring previous scans"
    assert [kind.value for kind in sink.kinds()] == ["appointment_requested", "appointment_approved"]


@pytest.mark.asyncio
async def test_double_booking_returns_conflict(client, catalog, booking_payload):
    first = await client.post(
        "/api/appointments/", json=booking_payload, headers=headers_for(catalog.patient_actor)
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/appointments/", json=booking_payload, headers=headers_for(catalog.other_patient_actor)
    )
    assert second.status_code == 409
    assert second.json()["kind"] == "slot_conflict"


@pytest.mark.asyncio
async def test_short_reason_is_rejected(client, catalog, booking_payload):
    booking_payload["reason"] = "pain"
    response = await client.post(
        "/api/appointments/", json=booking_payload, headers=headers_for(catalog.patient_actor)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_other_patient_cannot_view(client, catalog, booking_payload):
    created = await client.post(
        "/api/appointments/", json=booking_payload, headers=headers_for(catalog.patient_actor)
    )
    response = await client.get(
        f"/api/appointments/{created.json()['id']}",
        headers=headers_for(catalog.other_patient_actor),
    )
    assert response.status_code == 403
    assert response.json()["kind"] == "not_authorized"


@pytest.mark.asyncio
async def test_list_mine(client, catalog, booking_payload):
    await client.post(
        "/api/appointments/", json=booking_payload, headers=headers_for(catalog.patient_actor)
    )
    mine = await client.get("/api/appointments/mine", headers=headers_for(catalog.patient_actor))
    theirs = await client.get("/api/appointments/mine", headers=headers_for(catalog.other_patient_actor))
    assert len(mine.json()) == 1
    assert theirs.json() == []


@pytest.mark.asyncio
async def test_public_cancel_with_token(client, catalog, booking_payload):
    created = (
        await client.post(
            "/api/appointments/", json=booking_payload, headers=headers_for(catalog.patient_actor)
        )
    ).json()

    wrong = await client.post(
        f"/api/appointments/{created['id']}/cancel-public", json={"token": "not-the-token"}
    )
    assert wrong.status_code == 403

    response = await client.post(
        f"/api/appointments/{created['id']}/cancel-public",
        json={"token": created["cancellation_token"]},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_by"] == "patient_link"


@pytest.mark.asyncio
async def test_check_in_with_invalid_coordinate(client, catalog):
    response = await client.post(
        f"/api/appointments/{uuid4()}/check-in",
        json={"latitude": 95.0, "longitude": 0.0},
        headers=headers_for(catalog.patient_actor),
    )
    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_coordinate"
    assert response.json()["details"] == {"latitude": 95.0}


@pytest.mark.asyncio
async def test_unknown_appointment_is_not_found(client, catalog):
    response = await client.get(
        f"/api/appointments/{uuid4()}", headers=headers_for(catalog.patient_actor)
    )
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


@pytest.mark.asyncio
async def test_scheduler_jobs_empty_when_not_started(client):
    response = await client.get("/api/scheduler/jobs")
    assert response.status_code == 200
    assert response.json() == {"jobs": []}
