"""
Shared pytest fixtures and configuration.
"""

from typing import List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from focusflow.api.app import create_app
from focusflow.config import Config
from focusflow.errors import UpstreamFailure
from focusflow.store.database import Database
from focusflow.store.directory import UserDirectory
from focusflow.store.focus_state import FocusStateStore
from focusflow.store.gamification import GamificationStore
from focusflow.store.sessions import SessionStore

T0 = 1_767_225_600.0  # 2026-01-01T00:00:00Z


class FakeClock:
    """Settable stand-in for time.time()."""

    def __init__(self, start: float = T0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0) -> float:
        self.now += seconds + minutes * 60
        return self.now


class RecordingNotifier:
    """Captures outgoing mail; addresses in ``failing`` raise UpstreamFailure."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.failing: set = set()
        self.sent: List[dict] = []

    async def send(self, to: str, subject: str, text: str, html: str) -> bool:
        if to in self.failing:
            raise UpstreamFailure(f"smtp down for {to}")
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})
        return self.deliver


# ── Store-level fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "focusflow-test.db")
    database.migrate()
    return database


@pytest.fixture
def directory(db):
    d = UserDirectory(db)
    d.add_user("u-alice", "alice@example.com", "Alice")
    d.add_user("u-bob", "bob@example.com", "Bob")
    d.add_user("u-carol", "carol@example.com", "Carol")
    return d


@pytest.fixture
def session_store(db):
    return SessionStore(db)


@pytest.fixture
def focus_state(db):
    return FocusStateStore(db)


@pytest.fixture
def gamification(db):
    return GamificationStore(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ── HTTP fixtures ────────────────────────────────────────────────────────────

@pytest.fixture
def app(tmp_path, clock, notifier):
    """A fresh app per test with its own database, clock and mailbox."""
    cfg = Config(data_dir=tmp_path, database_file="api-test.db", sweep_interval_s=0)
    application = create_app(cfg, notifier=notifier)
    application.state.clock = clock
    return application


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        directory = app.state.services["directory"]
        directory.add_user("u-alice", "alice@example.com", "Alice")
        directory.add_user("u-bob", "bob@example.com", "Bob")
        directory.add_user("u-carol", "carol@example.com", "Carol")
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac


def as_user(email: str) -> dict:
    return {"X-Forwarded-Email": email}


ALICE = as_user("alice@example.com")
BOB = as_user("bob@example.com")
CAROL = as_user("carol@example.com")
