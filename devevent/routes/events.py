import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from devevent.core.errors import DevEventError
from devevent.database.db import get_db
from devevent.schemas.events import EventCreate, EventOut, EventUpdate
from devevent.services.events import (
    create_event,
    delete_event,
    find_events,
    get_event_by_slug,
    get_similar_events,
    update_event,
)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[EventOut])
def list_events(db: Session = Depends(get_db)):
    return find_events(db)


@router.post("", response_model=EventOut, status_code=201)
def publish_event(payload: EventCreate, db: Session = Depends(get_db)):
    try:
        return create_event(db, payload.model_dump())
    except DevEventError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{slug}", response_model=EventOut)
def event_detail(slug: str, db: Session = Depends(get_db)):
    try:
        return get_event_by_slug(db, slug)
    except DevEventError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{slug}/similar", response_model=list[EventOut])
def similar_events(slug: str, db: Session = Depends(get_db)):
    try:
        return get_similar_events(db, slug)
    except DevEventError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/{event_id}", response_model=EventOut)
def edit_event(event_id: uuid.UUID, payload: EventUpdate, db: Session = Depends(get_db)):
    try:
        return update_event(db, event_id, payload.model_dump(exclude_unset=True))
    except DevEventError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/{event_id}", status_code=204)
def remove_event(event_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        delete_event(db, event_id)
    except DevEventError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return Response(status_code=204)
