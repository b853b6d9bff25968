"""
Pytest configuration and shared fixtures.

Test settings are put in the environment before any landslide_alerts import
so the cached Settings instance picks them up.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_landslide.db")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "ACtest")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-token")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15005550006")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from landslide_alerts.config import get_settings
get_settings.cache_clear()

from landslide_alerts import models
from landslide_alerts.errors import DependencyError
from landslide_alerts.main import app, get_sms_transport
from landslide_alerts.storage import SessionLocal, Base, engine


class FakeSmsTransport:
    """Records sends; numbers in `fail_for` raise like a rejected Twilio call."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    async def send(self, to: str, from_: str, body: str) -> str:
        if to in self.fail_for:
            raise DependencyError("Failed to send SMS", details=f"rejected {to}")
        self.sent.append({"to": to, "from": from_, "body": body})
        return f"SM{len(self.sent):04d}"


@pytest.fixture
def sms():
    return FakeSmsTransport()


@pytest.fixture(scope="function")
def client(sms):
    """Create test client with fresh database and a fake SMS transport for each test."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_sms_transport] = lambda: sms

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(client):
    """Session on the same database the client uses."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_subscribers(db):
    """Subscribe phone numbers to a device."""
    def _add(device_id: str, *numbers: str) -> None:
        for number in numbers:
            db.add(models.Subscriber(device_id=device_id, phone_number=number))
        db.commit()
    return _add
