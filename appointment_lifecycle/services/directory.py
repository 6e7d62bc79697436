"""Directory service - read-only lookups of users, doctors and hospitals."""

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from uuid import UUID

from appointment_lifecycle.errors import StoreUnavailable
from appointment_lifecycle.models.doctor import Doctor
from appointment_lifecycle.models.hospital import Hospital
from appointment_lifecycle.models.user import User


class Directory:
    """Service class for catalog lookups consumed by the lifecycle engine."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _get(self, model, entity_id: UUID):
        try:
            async with self.session_factory() as session:
                return await session.get(model, entity_id)
        except OperationalError as exc:
            raise StoreUnavailable("Directory unavailable") from exc

    async def get_user(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        return await self._get(User, user_id)

    async def get_doctor(self, doctor_id: UUID) -> Doctor | None:
        """Get a doctor profile by ID."""
        return await self._get(Doctor, doctor_id)

    async def get_hospital(self, hospital_id: UUID) -> Hospital | None:
        """Get a hospital by ID."""
        return await self._get(Hospital, hospital_id)

    async def get_doctor_by_user(self, user_id: UUID) -> Doctor | None:
        """Get the doctor profile owned by a user."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Doctor).where(Doctor.user_id == user_id)
                )
                return result.scalar_one_or_none()
        except OperationalError as exc:
            raise StoreUnavailable("Directory unavailable") from exc
