# logontrack/db/session.py
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from logontrack.core.settings import get_settings

_settings = get_settings()
DATABASE_URL = _settings.DATABASE_URL

_url = make_url(DATABASE_URL)
_IS_SQLITE = _url.get_backend_name() == "sqlite"

if _IS_SQLITE and _url.database and _url.database != ":memory:":
    # aiosqlite does not create missing parent directories
    Path(_url.database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

ENGINE_OPTS = {"echo": _settings.SQL_ECHO, "pool_pre_ping": True}

if _settings.is_test():
    # fresh connection per checkout: safe across pytest event loops
    ENGINE_OPTS["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **ENGINE_OPTS)

if _IS_SQLITE:
    @event.listens_for(engine.sync_engine, "connect")
    def _apply_sqlite_pragmas(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        try:
            for pragma in _settings.sqlite_pragmas():
                cursor.execute(pragma)
        finally:
            cursor.close()

SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncSession:
    async with SessionLocal() as session:
        yield session


async def init_models() -> None:
    from logontrack.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models() -> None:
    from logontrack.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
