"""
Shared pytest fixtures for the Wellspring chapter workflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - fake_board / fake_email: recording stand-ins for the gateways
    - store: fresh ChapterStore with a fixed clock, installed on the app
"""

from datetime import datetime, timezone

import pytest

from wellspring import create_app
from wellspring.integrations.gmail_gateway import DraftResult
from wellspring.models import db as _db
from wellspring.services.snapshot_repository import SnapshotRepository, record_sync_attempt
from wellspring.services.sync_dispatcher import SyncDispatcher
from wellspring.workflow.store import EXTENSION_KEY, ChapterStore

FIXED_NOW = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


class FakeBoard:
    """Records every comment; ``accept`` controls the returned bool."""

    def __init__(self, accept=True):
        self.accept = accept
        self.comments = []

    def is_configured(self):
        return True

    def add_comment(self, item_id, text):
        self.comments.append((item_id, text))
        return self.accept


class FakeEmail:
    """Records every draft request."""

    def __init__(self, connected=True, succeed=True):
        self.connected = connected
        self.succeed = succeed
        self.drafts = []

    def is_connected(self):
        return self.connected

    def create_draft(self, to, cc, subject, body, attachment=None):
        self.drafts.append({"to": to, "cc": cc, "subject": subject, "body": body})
        if self.succeed:
            return DraftResult(success=True, draft_id=f"draft-{len(self.drafts)}")
        return DraftResult(success=False, error="quota exceeded")


class Clock:
    """Mutable clock: tests move time forward with ``advance``."""

    def __init__(self, now=FIXED_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    original_store = app.extensions[EXTENSION_KEY]
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
    # Tests may swap in their own store; the app store is reloaded next time
    app.extensions[EXTENSION_KEY] = original_store
    original_store.reset()
    original_store.loaded = False


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Workflow fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def fake_board():
    return FakeBoard()


@pytest.fixture()
def fake_email():
    return FakeEmail()


@pytest.fixture()
def dispatcher(fake_board, fake_email):
    return SyncDispatcher(
        board=fake_board,
        email=fake_email,
        recorder=record_sync_attempt,
        accounting_email="accounting@test.local",
    )


@pytest.fixture()
def store(app, dispatcher, clock):
    """A fresh, seeded store with fake gateways, installed on the app."""
    s = ChapterStore(
        repository=SnapshotRepository("test-chapter-storage"),
        dispatcher=dispatcher,
        clock=clock,
    )
    s.load()
    app.extensions[EXTENSION_KEY] = s
    return s
