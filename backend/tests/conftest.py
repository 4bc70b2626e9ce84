"""
Pytest fixtures for the database keeper, schedule, clock, mailer and client.

Each test gets its own SQLite file through aiosqlite, so the keeper's
reconnect path can be exercised against a store that survives the
dropped connection.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from signup_api.api.deps import get_keeper, get_mailer, get_now, get_publisher, get_schedule
from signup_api.core.config import Settings, get_settings
from signup_api.db.connection import ConnectionKeeper
from signup_api.main import app
from signup_api.services.mail_service import Mailer, drain_background_tasks
from signup_api.services.schedule import WindowSchedule
from signup_api.services.window_events import WindowEventPublisher

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
INVITE_CODE = "gala-2026"


class FrozenClock:
    """Stands in for get_now; advance it to move the request time."""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def __call__(self) -> datetime:
        return self.now


class RecordingMailer(Mailer):
    """Mailer that records messages instead of talking SMTP."""

    def __init__(self, error: Exception = None):
        super().__init__(Settings(SMTP_HOST="smtp.test", MAIL_ENABLED=True))
        self.sent = []
        self.error = error

    def send(self, to_email: str, subject: str, body: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to_email, "subject": subject, "body": body})


def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'signup.db'}"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def schedule() -> WindowSchedule:
    """Guests open at T+10s, others at T+20s, signup closes at T+1h."""
    return WindowSchedule(
        guest_opens_at=T0 + timedelta(seconds=10),
        other_opens_at=T0 + timedelta(seconds=20),
        signup_closes_at=T0 + timedelta(hours=1),
    )


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        ADMIN_USERNAME="admin", ADMIN_PASSWORD="s3cret", INVITE_CODE=INVITE_CODE, ENVIRONMENT="test"
    )


@pytest_asyncio.fixture
async def keeper(tmp_path) -> AsyncGenerator[ConnectionKeeper, None]:
    keeper = ConnectionKeeper(database_url(tmp_path), reconnect_delay=0.05)
    await keeper.start()
    yield keeper
    await keeper.close()


@pytest_asyncio.fixture
async def publisher(schedule) -> AsyncGenerator[WindowEventPublisher, None]:
    publisher = WindowEventPublisher(schedule, keepalive_seconds=0.05)
    yield publisher
    publisher.close()


@pytest_asyncio.fixture
async def client(
    keeper, schedule, clock, mailer, publisher, app_settings
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with every long-lived collaborator overridden."""
    app.dependency_overrides[get_keeper] = lambda: keeper
    app.dependency_overrides[get_schedule] = lambda: schedule
    app.dependency_overrides[get_now] = clock
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_settings] = lambda: app_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await drain_background_tasks()
    app.dependency_overrides.clear()


@pytest.fixture
def signup_payload() -> dict:
    return {
        "email": "ada@example.com",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "alcohol": "yes",
        "diet": "vegetarian",
        "tableGroup": "Engines",
        "avec": "Charles Babbage",
        "organisation": "Analytical Society",
        "gift": "no",
        "alumni": "yes",
        "sillis": "no",
    }
