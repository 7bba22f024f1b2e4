import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from devevent.database.db import Base
from devevent.models.events import utcnow


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    # Plain reference, not a foreign key: bookings outlive a deleted event
    event_id: Mapped[uuid.UUID] = mapped_column(index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_booking_event_email"),
    )
