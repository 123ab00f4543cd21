from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from portaria import auth, models
from portaria.config import Settings, get_settings
from portaria.consent import ConsentLifecycle
from portaria.db import Base, get_db, make_engine, make_sessionmaker
from portaria.dependencies import get_messenger
from portaria.directory import ResidentDirectory
from portaria.errors import SendFailed
from portaria.main import app
from portaria.messaging import SentMessage, TwilioMessenger

AUTH_TOKEN = "test-auth-token"
T0 = datetime(2026, 10, 19, 12, 0, 0)


class FakeMessenger(TwilioMessenger):
    """Records sends instead of calling Twilio; signature checks stay real."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.sent: list[tuple[str, dict[str, str]]] = []
        self.sids: list[str] = []
        self.failure: str | None = None

    def send(self, to: str, variables: dict[str, str]) -> SentMessage:
        if self.failure:
            raise SendFailed(self.failure)
        self.sent.append((to, variables))
        sid = self.sids.pop(0) if self.sids else f"SM{len(self.sent):032d}"
        return SentMessage(sid=sid, status="queued")


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret",
        twilio_account_sid="AC123",
        twilio_auth_token=AUTH_TOKEN,
        twilio_whatsapp_from="whatsapp:+14155238886",
        twilio_content_sid="HX123",
    )


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_sessionmaker(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def messenger(settings):
    return FakeMessenger(settings)


@pytest.fixture
def clock():
    return Clock(T0)


@pytest.fixture
def lifecycle(db, messenger, clock):
    return ConsentLifecycle(db, messenger, clock=clock)


@pytest.fixture
def directory(db):
    return ResidentDirectory(db)


@pytest.fixture
def client(db, settings, messenger):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_messenger] = lambda: messenger
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client, db):
    db.add(models.User(username="admin", password_hash=auth.hash_password("secret")))
    db.commit()
    response = client.post("/login", data={"username": "admin", "password": "secret"})
    assert response.status_code == 200
    return client
