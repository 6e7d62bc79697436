import uuid
from datetime import datetime, time
from sqlalchemy import Boolean, String, DateTime, Time, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from appointment_lifecycle.database import Base
from appointment_lifecycle.models.appointment import utcnow


class Doctor(Base):
    """Doctor profile - links a doctor user to the hospital they practise at."""

    __tablename__ = "doctors"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    hospital_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hospitals.id"),
        nullable=False,
        index=True,
    )
    specialization: Mapped[str] = mapped_column(String(100), nullable=False)
    # Bookable time-of-day window
    available_from: Mapped[time | None] = mapped_column(Time, nullable=True)
    available_to: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    def accepts_time(self, slot_time: time) -> bool:
        """Whether ``slot_time`` falls inside the doctor's bookable window."""
        if self.available_from is not None and slot_time < self.available_from:
            return False
        if self.available_to is not None and slot_time > self.available_to:
            return False
        return True

    def __repr__(self) -> str:
        return f"<Doctor {self.id} {self.specialization}>"
