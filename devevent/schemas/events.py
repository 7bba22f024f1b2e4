import datetime as dt
import uuid
from typing import List, Optional

from pydantic import BaseModel


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str
    description: str
    overview: str
    image: str
    venue: str
    location: str
    date: dt.date
    time: str
    mode: str
    audience: str
    agenda: List[str]
    organizer: str
    tags: List[str]


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    overview: Optional[str] = None
    image: Optional[str] = None
    venue: Optional[str] = None
    location: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    mode: Optional[str] = None
    audience: Optional[str] = None
    agenda: Optional[List[str]] = None
    organizer: Optional[str] = None
    tags: Optional[List[str]] = None


class EventOut(EventCreate):
    id: uuid.UUID
    slug: str
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True
