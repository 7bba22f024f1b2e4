import datetime as dt

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from devevent.database.db import Base, get_db
from devevent.main import app
from devevent.models.bookings import Booking
from devevent.models.events import Event
from devevent.services.events import create_event

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Set up and tear down the database for the test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """Empty both tables after every test."""
    yield
    db: Session = TestingSessionLocal()
    try:
        db.execute(delete(Booking))
        db.execute(delete(Event))
        db.commit()
    finally:
        db.close()


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def db_session():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def event_data() -> dict:
    return {
        "title": "Tech Conference 2024",
        "description": "A conference about the latest in tech",
        "overview": "Join us for an exciting day of learning",
        "image": "https://example.com/image.jpg",
        "venue": "Convention Center",
        "location": "San Francisco, CA",
        "date": dt.date(2024, 12, 31),
        "time": "14:30",
        "mode": "offline",
        "audience": "Developers",
        "agenda": ["Opening Keynote", "Technical Sessions", "Networking"],
        "organizer": "Tech Corp",
        "tags": ["technology", "conference", "networking"],
    }


@pytest.fixture
def event(db_session: Session, event_data: dict) -> Event:
    """A persisted event to book against."""
    return create_event(db_session, event_data)
