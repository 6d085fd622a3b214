from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/logontrack.db"
    DB_AUTO_CREATE: bool = True
    SQL_ECHO: bool = False

    # applied on every new SQLite connection, ignored for other dialects
    SQLITE_JOURNAL_MODE: str = "WAL"
    SQLITE_SYNCHRONOUS: str = "NORMAL"
    SQLITE_BUSY_TIMEOUT_MS: int = 30000
    SQLITE_CACHE_SIZE: int = 10000

    EXPECTED_USER_AGENT: str = "Winlog/"
    INGEST_SHARED_SECRET: str = ""  # empty: no X-Ingest-Key check

    TRUSTED_PROXY_CIDRS: str = "0.0.0.0/0,::/0"

    EVENT_BACKEND: Literal["sql", "jsonl"] = "sql"
    EVENT_LOG_PATH: str = "./data/events.jsonl"

    SESSION_LOCKING: bool = True

    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def trusted_proxy_cidrs(self) -> List[str]:
        return [c.strip() for c in self.TRUSTED_PROXY_CIDRS.split(",") if c.strip()]

    def is_test(self) -> bool:
        return self.APP_ENV in {"test", "ci"}

    def sqlite_pragmas(self) -> List[str]:
        return [
            f"PRAGMA journal_mode = {self.SQLITE_JOURNAL_MODE}",
            f"PRAGMA synchronous = {self.SQLITE_SYNCHRONOUS}",
            f"PRAGMA busy_timeout = {int(self.SQLITE_BUSY_TIMEOUT_MS)}",
            f"PRAGMA cache_size = {int(self.SQLITE_CACHE_SIZE)}",
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
