import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel


class BookRequest(BaseModel):
    event_id: str
    email: str
    slug: Optional[str] = None


class BookingOut(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    email: str
    slug: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True
