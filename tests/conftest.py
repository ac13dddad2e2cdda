"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every test gets its own user id, so rows left behind by one test are
invisible to the next.
"""
import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from narrate.core.auth import get_current_user_id
from narrate.core.cache import TTLCache, get_eligibility_cache
from narrate.core.clock import utcnow
from narrate.core.config import settings
from narrate.db.base import Base, get_db
from narrate.main import app
from narrate.models.entry import Entry
from narrate.services.provider import get_text_generator

SQLITE_URL = "sqlite:///./test_narrate.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

WELL_FORMED_RESPONSE = """**Weekly Summary:**
The week opened with a slow, heavy Monday but picked up once the project deadline passed.

Midweek brought a long walk and a conversation with an old friend.

**Key Theme:**
Making room for rest between bursts of effort.

**Insights & Reflections:**
- You noticed how much lighter evenings felt after stepping outside.
- Self-care showed up as small, deliberate choices.
- Reconnecting with friends gave the week its warmest moments.
- Work stress eased once expectations were said out loud."""


class FakeGenerator:
    """
    Scripted TextGenerator.

    Each call pops the next item from `script`: strings are returned,
    exceptions are raised. An exhausted script returns `default`.
    """

    model = "fake-model"

    def __init__(self, script=None, default=WELL_FORMED_RESPONSE, configured=True):
        self.script = list(script or [])
        self.default = default
        self._configured = configured
        self.prompts: list[str] = []

    @property
    def configured(self) -> bool:
        return self._configured

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        item = self.script.pop(0) if self.script else self.default
        if isinstance(item, BaseException):
            raise item
        return item


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def user_id():
    return f"user-{uuid.uuid4()}"


@pytest.fixture()
def generator():
    return FakeGenerator()


@pytest.fixture()
def cache():
    return TTLCache(default_ttl=300.0)


@pytest.fixture()
def client(user_id, generator, cache, monkeypatch):
    monkeypatch.setattr(settings, "SUMMARY_RETRY_DELAY_SECONDS", 0.0)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_id] = lambda: user_id
    app.dependency_overrides[get_text_generator] = lambda: generator
    app.dependency_overrides[get_eligibility_cache] = lambda: cache
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def anon_client(monkeypatch):
    """No auth override: requests go through the real current-user dependency."""
    monkeypatch.setattr(settings, "DEMO_USER_ID", "")
    monkeypatch.setattr(settings, "SUPABASE_URL", "")
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_entry(db, user_id):
    """Insert an entry directly, bypassing the API (and its cache invalidation)."""

    def _make(content="A quiet day spent mostly reading.", days_ago=1, owner=None, created_at=None):
        when = created_at or utcnow() - timedelta(days=days_ago)
        entry = Entry(user_id=owner or user_id, content=content, created_at=when)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _make


@pytest.fixture()
def week_of_entries(make_entry):
    """Six entries, one per day from yesterday back to six days ago."""
    return [make_entry(content=f"Day {n}: wrote a few honest lines.", days_ago=n) for n in range(1, 7)]
