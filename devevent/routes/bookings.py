import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from devevent.core.errors import DevEventError
from devevent.database.db import get_db
from devevent.schemas.bookings import BookingOut, BookRequest
from devevent.services.bookings import create_booking, find_bookings

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingOut, status_code=201)
def book_event(payload: BookRequest, db: Session = Depends(get_db)):
    try:
        return create_booking(db, event_id=payload.event_id, email=payload.email, slug=payload.slug)
    except DevEventError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("", response_model=list[BookingOut])
def list_bookings(event_id: Optional[uuid.UUID] = None, db: Session = Depends(get_db)):
    if event_id is None:
        return find_bookings(db)
    return find_bookings(db, event_id=event_id)
