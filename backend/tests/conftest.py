"""
Test configuration and fixtures.

Provides:
- In-memory SQLite engine per test (StaticPool, schema created from models)
- Session fixture and a fixed "now" for lifecycle tests
- booking factory going through create_booking
- TestClient with get_db overridden and event emission captured
"""
import os
from datetime import date, datetime

# Settings are read at import time; configure before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["ADMIN_API_KEY"] = "test-admin-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio_booking.database import get_db
from studio_booking.main import app
from studio_booking.models import Base
from studio_booking.routers import appointments as appointments_router
from studio_booking.schemas.appointments import AppointmentMetadataIn, ClientInfo, DateTimeIn
from studio_booking.schemas.services import ServiceSnapshot
from studio_booking.services.appointments import create_booking

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}

# Lifecycle tests run against this clock
NOW = datetime(2024, 4, 20, 9, 0)
DAY = date(2024, 5, 1)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Domain factories
# =============================================================================

def make_service(**overrides) -> ServiceSnapshot:
    data = {
        "id": "consultation",
        "name": "Consultation Stratégique",
        "category": "Conseil",
        "duration": 60,
        "price": 150,
    }
    data.update(overrides)
    return ServiceSnapshot(**data)


def make_client(**overrides) -> ClientInfo:
    data = {
        "first_name": "Camille",
        "last_name": "Martin",
        "email": "camille.martin@example.com",
        "phone": "0612345678",
    }
    data.update(overrides)
    return ClientInfo(**data)


@pytest.fixture
def book(db):
    """Create a booking through the engine: book(day, "10:00", ...)."""

    def _book(
        day: date = DAY,
        start_time: str = "10:00",
        service: ServiceSnapshot | None = None,
        payment_option: str = "onsite",
        consent: bool = True,
        now: datetime = NOW,
        config=None,
        client: ClientInfo | None = None,
    ):
        return create_booking(
            db,
            service=service or make_service(),
            date_time=DateTimeIn(date=day, start_time=start_time),
            client=client or make_client(),
            payment_option=payment_option,
            metadata=AppointmentMetadataIn(rgpd_consent=consent),
            now=now,
            config=config,
        )

    return _book


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def emitted(monkeypatch):
    """Events the routers tried to push to Redis."""
    events = []
    monkeypatch.setattr(
        appointments_router,
        "emit_event",
        lambda event_type, payload: events.append((event_type, payload)),
    )
    return events


@pytest.fixture
def client(session_factory, emitted):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
