"""Pytest fixtures."""

import os

# Must be set before the app and settings are imported
os.environ.setdefault("SCANNER_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
for _key in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "RESEND_API_KEY", "APNS_KEY_BASE64"):
    os.environ[_key] = ""

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from heykin.core.clock import FixedClock, get_clock  # noqa: E402
from heykin.core.security import hash_password  # noqa: E402
from heykin.db.base import Base  # noqa: E402
from heykin.db.session import get_db  # noqa: E402
from heykin.main import app  # noqa: E402
from heykin.models import CircleLink, Schedule, User  # noqa: E402
from heykin.services.providers import ProviderSet, SendResult, get_providers  # noqa: E402

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeProvider:
    """Records sends; returns queued results first, then success."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        self.calls = []
        self._queued: list[SendResult] = []

    def queue(self, *results: SendResult) -> None:
        self._queued.extend(results)

    def fail_always(self, error_code: str) -> None:
        self._queued = [SendResult.failure(error_code)] * 1000

    def send(self, recipient, content):
        self.calls.append((recipient, content))
        if self._queued:
            return self._queued.pop(0)
        return SendResult.success(f"{self.channel}-{len(self.calls)}")

    def recipients(self) -> list:
        return [r.user_id for r, _ in self.calls]


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables(setup_db):
    """Each test starts from empty tables."""
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def providers():
    return ProviderSet(
        push=FakeProvider("push"),
        sms=FakeProvider("sms"),
        email=FakeProvider("email"),
        voice=FakeProvider("voice"),
    )


@pytest.fixture
def client(clock, providers):
    """Test client with overridden DB, clock and providers."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_providers] = lambda: providers
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a user directly in the database."""
    counter = {"n": 0}

    def _make(name: str = "User", phone: str | None = None, is_checker: bool = True) -> User:
        counter["n"] += 1
        user = User(
            email=f"{name.lower().replace(' ', '_')}{counter['n']}@test.com",
            hashed_password=hash_password("pass"),
            full_name=name,
            phone_number=phone,
            is_checker=is_checker,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_schedule(db):
    def _make(user: User, **overrides) -> Schedule:
        fields = {
            "window_start_hour": 7,
            "window_start_minute": 0,
            "window_end_hour": 10,
            "window_end_minute": 0,
            "timezone_identifier": "America/New_York",
            "active_days": [0, 1, 2, 3, 4, 5, 6],
            "grace_period_minutes": 30,
            "reminder_enabled": True,
            "reminder_minutes_before": 30,
            "is_active": True,
        }
        fields.update(overrides)
        schedule = Schedule(user_id=user.id, **fields)
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule

    return _make


@pytest.fixture
def link(db):
    """Add ``supporter`` to ``checker``'s circle."""

    def _link(checker: User, supporter: User, **overrides) -> CircleLink:
        circle_link = CircleLink(checker_id=checker.id, supporter_id=supporter.id, **overrides)
        db.add(circle_link)
        db.commit()
        db.refresh(circle_link)
        return circle_link

    return _link


def register_and_login(client, email: str, full_name: str = "User", **extra) -> str:
    """Register through the API and return a bearer token."""
    client.post("/auth/register", json={"email": email, "password": "pass", "full_name": full_name, **extra})
    return client.post("/auth/login", json={"email": email, "password": "pass"}).json()["access_token"]


@pytest.fixture
def auth_headers(client):
    def _headers(email: str, full_name: str = "User", **extra) -> dict:
        return {"Authorization": f"Bearer {register_and_login(client, email, full_name, **extra)}"}

    return _headers
