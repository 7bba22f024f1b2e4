"""
Test API endpoints.
"""
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from devevent.database.db import get_db, reset_connection
from devevent.main import app
from devevent.models.events import Event
from devevent.services.bookings import create_booking


@pytest.fixture
def event_payload(event_data: dict) -> dict:
    return {**event_data, "date": event_data["date"].isoformat()}


class TestEventEndpoints:
    """Test event-related API endpoints."""

    def test_create_event(self, client: TestClient, event_payload: dict):
        """Test publishing an event via API."""
        response = client.post("/events", json={**event_payload, "time": "9:05"})

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Tech Conference 2024"
        assert data["slug"].startswith("tech-conference-2024-")
        assert data["time"] == "09:05"
        assert data["date"] == "2024-12-31"
        assert "id" in data

    def test_create_event_validation(self, client: TestClient, event_payload: dict):
        """Test that a payload missing a field never reaches the service."""
        del event_payload["title"]
        response = client.post("/events", json=event_payload)

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "override, message",
        [
            ({"time": "1430"}, "Invalid time format"),
            ({"time": "24:00"}, "Invalid time value"),
            ({"tags": []}, "Tags must be a non-empty array"),
            ({"venue": "   "}, "Venue is required"),
            ({"venue": "x" * 250}, "Venue must be at most 200 characters"),
            ({"image": "https://example.com/" + "x" * 600}, "Image must be at most 500 characters"),
        ],
    )
    def test_create_event_rejected(self, client: TestClient, event_payload: dict, override: dict, message: str):
        response = client.post("/events", json={**event_payload, **override})

        assert response.status_code == 400
        assert message in response.json()["detail"]

    def test_list_events(self, client: TestClient, event: Event):
        response = client.get("/events")

        assert response.status_code == 200
        assert [e["slug"] for e in response.json()] == [event.slug]

    def test_get_event_by_slug(self, client: TestClient, event: Event):
        """Test that the slug lookup ignores case."""
        response = client.get(f"/events/{event.slug.upper()}")

        assert response.status_code == 200
        assert response.json()["id"] == str(event.id)

    def test_get_event_not_found(self, client: TestClient):
        response = client.get("/events/nothing-here")

        assert response.status_code == 404
        assert response.json()["detail"] == "Event not found."

    def test_similar_events(self, client: TestClient, event: Event, event_payload: dict):
        client.post("/events", json={**event_payload, "title": "Related", "tags": ["networking"]})
        client.post("/events", json={**event_payload, "title": "Unrelated", "tags": ["gardening"]})

        response = client.get(f"/events/{event.slug}/similar")

        assert response.status_code == 200
        assert [e["title"] for e in response.json()] == ["Related"]

    def test_update_event(self, client: TestClient, event: Event):
        response = client.patch(f"/events/{event.id}", json={"title": "Renamed Event"})

        assert response.status_code == 200
        assert response.json()["slug"].startswith("renamed-event-")

    def test_update_event_not_found(self, client: TestClient):
        response = client.patch(f"/events/{uuid.uuid4()}", json={"title": "Renamed Event"})
        assert response.status_code == 404

    def test_delete_event_keeps_bookings(self, client: TestClient, db_session: Session, event: Event):
        create_booking(db_session, event_id=event.id, email="test@example.com")

        response = client.delete(f"/events/{event.id}")

        assert response.status_code == 204
        bookings = client.get("/bookings", params={"event_id": str(event.id)}).json()
        assert [b["email"] for b in bookings] == ["test@example.com"]


class TestBookingEndpoints:
    """Test booking-related API endpoints."""

    def test_book_event(self, client: TestClient, event: Event):
        """Test booking a spot via API."""
        response = client.post(
            "/bookings",
            json={"event_id": str(event.id), "email": "  Test@Example.com ", "slug": event.slug},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["event_id"] == str(event.id)
        assert data["email"] == "test@example.com"
        assert data["slug"] == event.slug

    def test_book_event_twice(self, client: TestClient, event: Event):
        payload = {"event_id": str(event.id), "email": "test@example.com"}
        assert client.post("/bookings", json=payload).status_code == 201

        response = client.post("/bookings", json={**payload, "email": "TEST@EXAMPLE.COM"})

        assert response.status_code == 409

    def test_book_missing_event(self, client: TestClient):
        response = client.post("/bookings", json={"event_id": str(uuid.uuid4()), "email": "test@example.com"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Referenced event does not exist."

    def test_book_invalid_email(self, client: TestClient, event: Event):
        response = client.post("/bookings", json={"event_id": str(event.id), "email": "user@example"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email format."

    def test_book_validation(self, client: TestClient):
        """Test booking with a missing email."""
        response = client.post("/bookings", json={"event_id": str(uuid.uuid4())})
        assert response.status_code == 422

    def test_list_bookings(self, client: TestClient, event: Event):
        for email in ["user1@example.com", "user2@example.com"]:
            client.post("/bookings", json={"event_id": str(event.id), "email": email})

        response = client.get("/bookings")

        assert response.status_code == 200
        assert sorted(b["email"] for b in response.json()) == ["user1@example.com", "user2@example.com"]


class TestDatabaseUnavailable:
    """Test requests made while the database is not configured."""

    def test_missing_database_url(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delitem(app.dependency_overrides, get_db)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        reset_connection()

        response = client.get("/events")

        assert response.status_code == 503
        assert "DATABASE_URL" in response.json()["detail"]
        assert response.json()["field"] is None

    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"
