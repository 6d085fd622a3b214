# logontrack/tests/conftest.py
import os
import pathlib
import sys
import tempfile

# Throw-away SQLite file per test run; must be set before logontrack.db is imported
_TMP = tempfile.mkdtemp(prefix="logontrack-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/events.db"
os.environ["EXPECTED_USER_AGENT"] = "Winlog/"
os.environ["INGEST_SHARED_SECRET"] = ""
os.environ["EVENT_BACKEND"] = "sql"
os.environ["LOG_JSON"] = "false"

# project root on sys.path (logontrack/tests -> logontrack -> root: parents[2])
ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from logontrack.db.models import Base  # noqa: E402
from logontrack.db.session import SessionLocal, engine  # noqa: E402

UA = {"User-Agent": "Winlog/0.1.0 (Windows)"}


@pytest_asyncio.fixture
async def db():
    """Empty events table for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield SessionLocal


@pytest_asyncio.fixture
async def client(db):
    from logontrack.main import app

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def counter_ids():
    """Deterministic id source: alice@PC1@000001, alice@PC1@000002, ..."""
    state = {"n": 0}

    def factory(username, hostname, day):
        state["n"] += 1
        return f"{username}@{hostname}@{state['n']:06d}"

    return factory
