"""
Sloka API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before any `sloka_api` import so the
       settings singleton never points at a real database.

Fixtures:
    make_verse        builds VerseOut records
    fake_store        in-memory VerseStore stand-in for HTTP tests
    app_factory       builds an app with overridden settings and store
    test_client       HTTPX AsyncClient over ASGITransport
    sqlite_database   a connected Database on a temporary SQLite file
"""

import os
import re
import tempfile
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="sloka_test_"), "unused.db"
)
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["APP_ENV"] = "development"
os.environ["ALLOWED_ORIGINS"] = ""

from sloka_api.config import Settings  # noqa: E402
from sloka_api.database import Base, Database  # noqa: E402
from sloka_api.main import create_app  # noqa: E402
from sloka_api.routes.deps import get_store  # noqa: E402
from sloka_api.schemas.verse import VerseOut  # noqa: E402
from sloka_api.services.selection import escape_regex  # noqa: E402
from sloka_api.services.verse_store import SEARCH_MAX_RESULTS, parse_verse_id  # noqa: E402


def build_verse(
    sloka: str,
    source: Optional[str] = None,
    translation: Optional[str] = None,
    transliteration: Optional[str] = None,
) -> VerseOut:
    now = datetime.now(timezone.utc)
    return VerseOut(
        id=uuid.uuid4(),
        sloka=sloka,
        source=source,
        translation=translation,
        transliteration=transliteration,
        created_at=now,
        updated_at=now,
    )


class FakeVerseStore:
    """
    List-backed stand-in with the VerseStore interface.

    Search uses the same escaping as the real store plus Python's `re`, so
    the literal-match behaviour is observable over HTTP.
    """

    def __init__(self, verses: Optional[List[VerseOut]] = None):
        self.verses = list(verses or [])
        self.calls: List[str] = []

    async def count(self) -> int:
        self.calls.append("count")
        return len(self.verses)

    async def find_by_id(self, raw_id: str) -> Optional[VerseOut]:
        verse_id = parse_verse_id(raw_id)
        self.calls.append("find_by_id")
        return next((v for v in self.verses if v.id == verse_id), None)

    async def find_at_offset(self, offset: int) -> Optional[VerseOut]:
        self.calls.append("find_at_offset")
        if 0 <= offset < len(self.verses):
            return self.verses[offset]
        return None

    async def find_by_source_substring(self, text: str, limit: int = 50) -> List[VerseOut]:
        self.calls.append("find_by_source_substring")
        pattern = re.compile(escape_regex(text), re.IGNORECASE)
        matches = [v for v in self.verses if v.source and pattern.search(v.source)]
        return matches[: min(limit, SEARCH_MAX_RESULTS)]

    async def find_page(self, skip: int, take: int) -> List[VerseOut]:
        self.calls.append("find_page")
        return self.verses[skip: skip + take]


@pytest.fixture
def make_verse():
    return build_verse


@pytest.fixture
def fake_store():
    return FakeVerseStore(
        [
            build_verse("धर्मक्षेत्रे कुरुक्षेत्रे", source="Bhagavad Gita 1.1", translation="On the field of dharma"),
            build_verse("कर्मण्येवाधिकारस्ते", source="Bhagavad Gita 2.47", translation="You have a right to action"),
            build_verse("असतो मा सद्गमय", source="Brihadaranyaka Upanishad 1.3.28", translation="Lead me from the unreal to the real"),
            build_verse("सत्यमेव जयते", source="Mundaka Upanishad 3.1.6", translation="Truth alone triumphs"),
            build_verse("वसुधैव कुटुम्बकम्", source="Maha Upanishad 6.71", translation="The world is one family"),
        ]
    )


@pytest.fixture
def test_settings():
    return Settings(database_url=os.environ["DATABASE_URL"], log_level="WARNING")


@pytest.fixture
def app_factory(test_settings):
    """
    Build an app with the given store injected in place of get_store.

    Usage:
        app = app_factory(store=FakeVerseStore([...]), app_env="production")
    """

    def _build(store=None, database=None, **overrides):
        app_settings = test_settings.model_copy(update=overrides) if overrides else test_settings
        app = create_app(app_settings, database=database)
        if store is not None:
            app.dependency_overrides[get_store] = lambda: store
        return app

    return _build


def client_for(app, raise_app_exceptions: bool = True) -> AsyncClient:
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
def store_factory():
    return FakeVerseStore


@pytest.fixture
def make_client():
    return client_for


@pytest_asyncio.fixture
async def test_client(app_factory, fake_store):
    async with client_for(app_factory(store=fake_store)) as client:
        yield client


@pytest.fixture
def mock_db_session():
    """Mock AsyncSession; set `execute.return_value` per test."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest_asyncio.fixture
async def sqlite_database(tmp_path, test_settings):
    """A connected Database with the schema created on a temp SQLite file."""
    database = Database(test_settings, url=f"sqlite+aiosqlite:///{tmp_path / 'slokas.db'}")
    engine = await database.connect()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield database
    await database.dispose()
