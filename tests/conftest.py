"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from authflow.application.services.account_service import AccountService
from authflow.core.app_factory import create_application
from authflow.core.config import Settings
from authflow.domain.ports.notifications import NotificationError
from authflow.infrastructure.persistence.sqlite import SQLiteAccountStore
from authflow.services.notification_dispatcher import NotificationDispatcher
from authflow.services.passwords import PasswordHasher
from authflow.services.sessions import SessionIssuer
from authflow.services.tokens import TokenGenerator

# Minimum bcrypt cost keeps the suite fast; production uses 10 rounds.
TEST_HASH_ROUNDS = 4
TEST_SECRET = "test-session-secret"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.now = value


class RecordingNotificationSink:
    """Notification sink that records every message and can be told to fail."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail_on: Set[str] = set()

    def of_kind(self, kind: str) -> List[Tuple[str, str, str]]:
        return [item for item in self.sent if item[0] == kind]

    def _record(self, kind: str, email: str, detail: str = "") -> None:
        if kind in self.fail_on:
            raise NotificationError(f"{kind} delivery failed")
        self.sent.append((kind, email, detail))

    async def send_verification(self, email: str, code: str) -> None:
        self._record("verification", email, code)

    async def send_welcome(self, email: str, name: str) -> None:
        self._record("welcome", email, name)

    async def send_reset_link(self, email: str, url: str) -> None:
        self._record("reset_link", email, url)

    async def send_reset_success(self, email: str) -> None:
        self._record("reset_success", email)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def store(tmp_path):
    store = SQLiteAccountStore(tmp_path / "auth.db")
    yield store
    store.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_HASH_ROUNDS)


@pytest.fixture
def session_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def sessions(session_secret) -> SessionIssuer:
    return SessionIssuer(session_secret)


@pytest_asyncio.fixture
async def dispatcher(sink):
    dispatcher = NotificationDispatcher(sink, queue_size=10, max_workers=2)
    await dispatcher.start()
    yield dispatcher
    await dispatcher.stop()


@pytest_asyncio.fixture
async def service(store, hasher, sessions, dispatcher, clock) -> AccountService:
    return AccountService(
        store,
        hasher,
        TokenGenerator(clock=clock),
        sessions,
        dispatcher,
        client_url="http://client.test",
        clock=clock,
    )


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("SESSION_SECRET", TEST_SECRET)
    monkeypatch.setenv("CLIENT_URL", "http://client.test")
    monkeypatch.setenv("PASSWORD_HASH_ROUNDS", str(TEST_HASH_ROUNDS))
    monkeypatch.setenv("APP_ENV", "development")
    for key in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_FROM_EMAIL", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(key, raising=False)
    return Settings()


@pytest.fixture
def client(settings, sink):
    app = create_application(settings, notification_sink=sink)
    with TestClient(app) as test_client:
        yield test_client
