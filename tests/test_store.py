"""Store failure mapping when the database cannot be reached."""

from uuid import uuid4

import pytest
import pytest_asyncio

from appointment_lifecycle.database import close_db, create_engine_for, create_session_factory
from appointment_lifecycle.errors import StoreUnavailable
from appointment_lifecycle.services.store import AppointmentStore

from conftest import on_slot_day


@pytest_asyncio.fixture
async def unreachable_store(tmp_path, settings):
    # SQLite cannot create a database file inside a directory that does not exist
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'appointments.db'}")
    yield AppointmentStore(create_session_factory(engine), settings)
    await close_db(engine)


@pytest.mark.asyncio
async def test_find_by_id_reports_store_unavailable(unreachable_store):
    with pytest.raises(StoreUnavailable):
        await unreachable_store.find_by_id(uuid4())


@pytest.mark.asyncio
async def test_list_geo_attempts_reports_store_unavailable(unreachable_store):
    with pytest.raises(StoreUnavailable):
        await unreachable_store.list_geo_attempts(uuid4())


@pytest.mark.asyncio
async def test_sweep_scans_report_store_unavailable(unreachable_store):
    with pytest.raises(StoreUnavailable):
        await unreachable_store.scan_due_reminders(on_slot_day(9, 0), 10)
    with pytest.raises(StoreUnavailable):
        await unreachable_store.scan_due_no_shows(on_slot_day(10, 30), 10)
