"""
Randomised checks of lifecycle invariants over seeded command sequences.
"""

import random
from datetime import time

import pytest

from appointment_lifecycle.errors import AppointmentError
from appointment_lifecycle.models.appointment import (
    ALLOWED_TRANSITIONS,
    AppointmentStatus,
    TERMINAL_STATUSES,
    can_transition,
)
from appointment_lifecycle.services.lifecycle import ReminderKind
from appointment_lifecycle.services.scheduler import AppointmentScheduler

from conftest import BOOKED_AT, booking, on_slot_day, point_north


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()
        for target in AppointmentStatus:
            assert not can_transition(status, target)


def test_random_walk_only_reaches_known_statuses():
    rng = random.Random(2025)
    for _ in range(500):
        status = AppointmentStatus.PENDING_REVIEW
        while ALLOWED_TRANSITIONS[status]:
            target = rng.choice(sorted(ALLOWED_TRANSITIONS[status], key=lambda s: s.value))
            assert can_transition(status, target)
            status = target
        assert status in TERMINAL_STATUSES


MOMENTS = [BOOKED_AT] + [on_slot_day(h, m) for h, m in [(8, 0), (9, 5), (9, 40), (9, 50), (9, 58), (10, 5), (10, 20)]]


async def run_random_command(rng, lifecycle, catalog, appointment_id):
    now = rng.choice(MOMENTS)
    command = rng.choice(
        [
            "approve",
            "reject",
            "cancel_patient",
            "cancel_doctor",
            "check_in_near",
            "check_in_far",
            "remind_hour",
            "remind_quarter",
            "expire",
            "complete",
            "confirm",
            "reinstate",
        ]
    )
    if command == "approve":
        await lifecycle.approve(catalog.doctor_actor, appointment_id)
    elif command == "reject":
        await lifecycle.reject(catalog.doctor_actor, appointment_id)
    elif command == "cancel_patient":
        await lifecycle.cancel_by_party(appointment_id, actor=catalog.patient_actor, now=now)
    elif command == "cancel_doctor":
        await lifecycle.cancel_by_party(appointment_id, actor=catalog.doctor_actor, now=now)
    elif command == "check_in_near":
        await lifecycle.check_in(catalog.patient_actor, appointment_id, *point_north(50), now=now)
    elif command == "check_in_far":
        await lifecycle.check_in(catalog.patient_actor, appointment_id, *point_north(5000), now=now)
    elif command == "remind_hour":
        await lifecycle.send_reminder(appointment_id, ReminderKind.ONE_HOUR, now)
    elif command == "remind_quarter":
        await lifecycle.send_reminder(appointment_id, ReminderKind.FIFTEEN_MINUTES, now)
    elif command == "expire":
        await lifecycle.expire_no_show(appointment_id, now)
    elif command == "complete":
        await lifecycle.complete(catalog.doctor_actor, appointment_id)
    elif command == "confirm":
        await lifecycle.confirm_cancel_request(catalog.doctor_actor, appointment_id)
    else:
        await lifecycle.reinstate(catalog.doctor_actor, appointment_id)


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
async def test_random_commands_preserve_invariants(seed, lifecycle, store, catalog):
    rng = random.Random(seed)
    appointment = await lifecycle.book(catalog.patient_actor, booking(catalog), now=BOOKED_AT)
    previous = await store.find_by_id(appointment.id)

    for _ in range(40):
        try:
            await run_random_command(rng, lifecycle, catalog, appointment.id)
        except AppointmentError:
            pass
        current = await store.find_by_id(appointment.id)

        if current.status != previous.status:
            assert can_transition(previous.status_enum, current.status_enum)
            assert current.revision > previous.revision
        assert current.revision >= previous.revision
        # Flags only ever move from False to True
        assert current.reminder_one_hour_sent >= previous.reminder_one_hour_sent
        assert current.reminder_fifteen_min_sent >= previous.reminder_fifteen_min_sent
        assert current.geo_verified >= previous.geo_verified
        if current.status_enum == AppointmentStatus.COMPLETED:
            assert current.geo_verified is True
        previous = current


@pytest.mark.asyncio
@pytest.mark.parametrize("batch_size", [1, 2, 100])
async def test_no_show_outcome_does_not_depend_on_batch_size(
    batch_size, lifecycle, store, settings, catalog, make_approved
):
    slots = [time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0)]
    appointments = {slot: await make_approved(appointment_time=slot) for slot in slots}
    await lifecycle.check_in(
        catalog.patient_actor, appointments[time(9, 30)].id, *point_north(10), now=on_slot_day(9, 25)
    )

    scheduler = AppointmentScheduler(
        lifecycle, store, settings.model_copy(update={"sweep_batch_size": batch_size})
    )
    now = on_slot_day(10, 50)
    for _ in range(len(slots) + 1):
        stats = await scheduler.run_no_show_sweep(now)
        assert stats.scanned <= batch_size
        if stats.scanned == 0:
            break

    cancelled = set()
    for slot, appointment in appointments.items():
        stored = await store.find_by_id(appointment.id)
        if stored.status == AppointmentStatus.CANCELLED.value:
            cancelled.add(slot)
    assert cancelled == {time(9, 0), time(10, 0), time(10, 30)}
