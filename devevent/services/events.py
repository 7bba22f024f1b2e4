import datetime as dt
import re
import string
import threading
import time
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from devevent.core.errors import (
    InvalidFormatError,
    InvalidValueError,
    MissingFieldError,
    NonEmptyConstraintError,
    NotFoundError,
    UniquenessError,
)
from devevent.core.logging_config import get_logger
from devevent.database.db import check_filter_keys, column_length
from devevent.models.events import Event, EventMode, utcnow

logger = get_logger("services.events")

TEXT_FIELDS = (
    "title",
    "description",
    "overview",
    "image",
    "venue",
    "location",
    "time",
    "mode",
    "audience",
    "organizer",
)
LIST_FIELDS = ("agenda", "tags")
# Checked by their own format rules rather than by length
FORMATTED_FIELDS = ("time", "mode")
EDITABLE_FIELDS = TEXT_FIELDS + LIST_FIELDS + ("date",)
# Text columns carry no declared length; every other limit is the column's own
MAX_LENGTHS = {"description": 1000, "overview": 500}

SIMILAR_EVENTS_LIMIT = 3

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_BASE36_DIGITS = string.digits + string.ascii_lowercase

_slug_clock_lock = threading.Lock()
_last_slug_stamp = 0


# ---------- Derivation ----------
def slugify_title(title: str) -> str:
    return _SLUG_SEPARATORS.sub("-", title.lower().strip()).strip("-")


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
        if value == 0:
            return "".join(reversed(digits))


def _slug_suffix() -> str:
    """Base-36 nanosecond timestamp, strictly increasing within the process."""
    global _last_slug_stamp
    with _slug_clock_lock:
        stamp = max(time.time_ns(), _last_slug_stamp + 1)
        _last_slug_stamp = stamp
    return _to_base36(stamp)


def generate_slug(title: str) -> str:
    base = slugify_title(title)
    suffix = _slug_suffix()
    return f"{base}-{suffix}" if base else suffix


def normalize_time(value: str) -> str:
    """Validate a 24-hour ``H:MM``/``HH:MM`` string and zero-pad it to ``HH:MM``."""
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidFormatError("Invalid time format. Expected HH:MM (24-hour).", field="time")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidValueError("Invalid time value.", field="time")
    return f"{hours:02d}:{minutes:02d}"


# ---------- Validation ----------
def _clean_text(data: Mapping[str, Any], field: str) -> str:
    value = data.get(field)
    if value is None:
        raise MissingFieldError(f"{field.capitalize()} is required.", field=field)
    if not isinstance(value, str):
        raise InvalidFormatError(f"{field.capitalize()} must be a string.", field=field)

    value = value.strip()
    if not value:
        raise MissingFieldError(f"{field.capitalize()} is required.", field=field)
    if field in FORMATTED_FIELDS:
        return value

    limit = MAX_LENGTHS.get(field) or column_length(Event, field)
    if limit is not None and len(value) > limit:
        raise InvalidValueError(
            f"{field.capitalize()} must be at most {limit} characters.", field=field
        )
    return value


def _clean_list(data: Mapping[str, Any], field: str) -> list[str]:
    value = data.get(field)
    if value is None:
        raise MissingFieldError(f"{field.capitalize()} is required.", field=field)
    if not isinstance(value, (list, tuple)):
        raise InvalidFormatError(f"{field.capitalize()} must be a list of strings.", field=field)

    message = f"{field.capitalize()} must be a non-empty array of non-empty strings."
    if not value or not all(isinstance(item, str) and item.strip() for item in value):
        raise NonEmptyConstraintError(message, field=field)
    return [item.strip() for item in value]


def _clean_date(data: Mapping[str, Any]) -> dt.date:
    value = data.get("date")
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError("Date is required.", field="date")
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidFormatError("Invalid date. Expected YYYY-MM-DD.", field="date")


def _clean_mode(value: str) -> str:
    try:
        return EventMode(value.lower()).value
    except ValueError:
        accepted = ", ".join(mode.value for mode in EventMode)
        raise InvalidValueError(f"Mode must be one of: {accepted}.", field="mode")


def validate_event(data: Mapping[str, Any], previous: Optional[Event] = None) -> dict[str, Any]:
    """
    Check a candidate event and return its normalized fields, slug included.

    ``previous`` is the stored record when updating. The slug is derived again
    only for a new record or a changed title; the time is validated again only
    for a new record or a changed time, otherwise the stored value is kept.
    """
    fields: dict[str, Any] = {field: _clean_text(data, field) for field in TEXT_FIELDS}
    for field in LIST_FIELDS:
        fields[field] = _clean_list(data, field)
    fields["date"] = _clean_date(data)
    fields["mode"] = _clean_mode(fields["mode"])

    if previous is None or fields["title"] != previous.title:
        fields["slug"] = generate_slug(fields["title"])
    else:
        fields["slug"] = previous.slug

    if previous is None or fields["time"] != previous.time:
        fields["time"] = normalize_time(fields["time"])
    else:
        fields["time"] = previous.time

    return fields


# ---------- Persistence ----------
def _save(db: Session, event: Event) -> Event:
    now = utcnow()
    if event.created_at is None:
        event.created_at = now
    event.updated_at = now
    db.add(event)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise UniquenessError(f"An event with slug '{event.slug}' already exists.", field="slug") from exc
    db.refresh(event)
    return event


def create_event(db: Session, data: Mapping[str, Any]) -> Event:
    fields = validate_event(data)
    event = _save(db, Event(**fields))
    logger.info("Event created: %s (%s)", event.slug, event.id)
    return event


def update_event(db: Session, event_id: uuid.UUID, changes: Mapping[str, Any]) -> Event:
    """Apply ``changes`` on top of the stored event and save it."""
    event = get_event(db, event_id)
    candidate = {field: getattr(event, field) for field in EDITABLE_FIELDS}
    candidate.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})

    fields = validate_event(candidate, previous=event)
    for field, value in fields.items():
        setattr(event, field, value)

    event = _save(db, event)
    logger.info("Event updated: %s (%s)", event.slug, event.id)
    return event


def get_event(db: Session, event_id: uuid.UUID) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found.")
    return event


def find_events(db: Session, **filters: Any) -> list[Event]:
    """Events matching the equality filters, newest first."""
    check_filter_keys(Event, filters)
    stmt = select(Event).filter_by(**filters).order_by(Event.created_at.desc())
    return list(db.scalars(stmt))


def find_one_event(db: Session, **filters: Any) -> Optional[Event]:
    check_filter_keys(Event, filters)
    stmt = select(Event).filter_by(**filters).limit(1)
    return db.scalars(stmt).first()


def get_event_by_slug(db: Session, slug: str) -> Event:
    normalized = slug.strip().lower()
    if not normalized:
        raise InvalidFormatError('Invalid or missing "slug" parameter.', field="slug")

    event = find_one_event(db, slug=normalized)
    if event is None:
        raise NotFoundError("Event not found.")
    return event


def get_similar_events(db: Session, slug: str) -> list[Event]:
    """Up to three other events sharing at least one tag, newest first."""
    event = get_event_by_slug(db, slug)
    tags = set(event.tags)

    similar = []
    for other in find_events(db):
        if other.id != event.id and tags.intersection(other.tags):
            similar.append(other)
            if len(similar) == SIMILAR_EVENTS_LIMIT:
                break
    return similar


def delete_event(db: Session, event_id: uuid.UUID) -> None:
    # Bookings keep their reference; nothing cascades
    event = get_event(db, event_id)
    slug = event.slug
    db.delete(event)
    db.commit()
    logger.info("Event deleted: %s (%s)", slug, event_id)
