import uuid
from datetime import datetime
from sqlalchemy import Boolean, String, DateTime, Float, Text
from sqlalchemy.orm import Mapped, mapped_column
from appointment_lifecycle.database import Base
from appointment_lifecycle.models.appointment import utcnow


class Hospital(Base):
    """Hospital model - the check-in geo-fence is centred on its coordinates."""

    __tablename__ = "hospitals"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Hospital {self.name}>"
