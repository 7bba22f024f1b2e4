import re
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from devevent.core.errors import (
    InvalidFormatError,
    InvalidValueError,
    MissingFieldError,
    NotFoundError,
    ReferenceNotFoundError,
    UniquenessError,
)
from devevent.core.logging_config import get_logger
from devevent.database.db import check_filter_keys, column_length
from devevent.models.bookings import Booking
from devevent.models.events import Event, utcnow

logger = get_logger("services.bookings")

# The slug always follows the referenced event
EDITABLE_FIELDS = ("event_id", "email")

# local-part@domain.tld: dot-separated atoms on both sides, so no leading,
# trailing or doubled dots, no whitespace and exactly one "@"
EMAIL_PATTERN = re.compile(
    r"^[a-z0-9_%+-]+(?:\.[a-z0-9_%+-]+)*"
    r"@(?:[a-z0-9-]+\.)+[a-z0-9-]+$"
)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def _clean_email(data: Mapping[str, Any]) -> str:
    value = data.get("email")
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError("Email is required.", field="email")
    if not isinstance(value, str):
        raise InvalidFormatError("Invalid email format.", field="email")

    email = normalize_email(value)
    if not EMAIL_PATTERN.match(email):
        raise InvalidFormatError("Invalid email format.", field="email")

    limit = column_length(Booking, "email")
    if len(email) > limit:
        raise InvalidValueError(f"Email must be at most {limit} characters.", field="email")
    return email


def _clean_event_id(data: Mapping[str, Any]) -> uuid.UUID:
    value = data.get("event_id")
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError("Event id is required.", field="event_id")
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        raise InvalidFormatError("Invalid event id.", field="event_id")


def _clean_slug(data: Mapping[str, Any]) -> Optional[str]:
    value = data.get("slug")
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidFormatError("Slug must be a string.", field="slug")
    return value.strip().lower() or None


def referenced_event_slug(db: Session, event_id: uuid.UUID) -> Optional[str]:
    """Slug of the event with this id, None when no such event exists."""
    return db.scalar(select(Event.slug).where(Event.id == event_id))


def validate_booking(
    db: Session, data: Mapping[str, Any], previous: Optional[Booking] = None
) -> dict[str, Any]:
    """
    Check a candidate booking and return its normalized fields.

    The referenced event is looked up only for a new booking or when the
    event id changed; editing the email alone does not repeat the lookup.
    The stored slug is the referenced event's slug; a slug given in ``data``
    must match it.
    """
    fields = {
        "event_id": _clean_event_id(data),
        "email": _clean_email(data),
    }
    requested_slug = _clean_slug(data)

    if previous is None or fields["event_id"] != previous.event_id:
        fields["slug"] = referenced_event_slug(db, fields["event_id"])
        if fields["slug"] is None:
            raise ReferenceNotFoundError("Referenced event does not exist.", field="event_id")
    else:
        fields["slug"] = previous.slug

    if requested_slug is not None and requested_slug != fields["slug"]:
        raise InvalidValueError("Slug does not match the referenced event.", field="slug")
    return fields


def _save(db: Session, booking: Booking) -> Booking:
    now = utcnow()
    if booking.created_at is None:
        booking.created_at = now
    booking.updated_at = now
    db.add(booking)
    try:
        db.commit()
    except IntegrityError as exc:
        # The compound unique index is the final word when two requests race
        db.rollback()
        raise UniquenessError(
            "A booking for this event and email already exists.", field="email"
        ) from exc
    db.refresh(booking)
    return booking


def create_booking(
    db: Session, *, event_id: Any, email: Any, slug: Optional[str] = None
) -> Booking:
    fields = validate_booking(db, {"event_id": event_id, "email": email, "slug": slug})
    booking = _save(db, Booking(**fields))
    logger.info("Booking created for event %s by %s", booking.event_id, booking.email)
    return booking


def update_booking(db: Session, booking_id: uuid.UUID, changes: Mapping[str, Any]) -> Booking:
    booking = get_booking(db, booking_id)
    candidate = {field: getattr(booking, field) for field in EDITABLE_FIELDS}
    candidate.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})

    fields = validate_booking(db, candidate, previous=booking)
    for field, value in fields.items():
        setattr(booking, field, value)
    return _save(db, booking)


def get_booking(db: Session, booking_id: uuid.UUID) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found.")
    return booking


def find_bookings(db: Session, **filters: Any) -> list[Booking]:
    check_filter_keys(Booking, filters)
    stmt = select(Booking).filter_by(**filters).order_by(Booking.created_at)
    return list(db.scalars(stmt))


def count_bookings(db: Session, event_id: uuid.UUID) -> int:
    total = db.scalar(select(func.count(Booking.id)).where(Booking.event_id == event_id))
    return int(total or 0)


def delete_booking(db: Session, booking_id: uuid.UUID) -> None:
    booking = get_booking(db, booking_id)
    db.delete(booking)
    db.commit()


def delete_bookings_for_event(db: Session, event_id: uuid.UUID) -> int:
    result = db.execute(delete(Booking).where(Booking.event_id == event_id))
    db.commit()
    return int(result.rowcount or 0)
