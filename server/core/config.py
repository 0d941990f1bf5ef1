"""Environment-driven configuration with Pydantic v2."""

import socket
from typing import Literal, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import make_url


def _is_sqlite_file(url: str) -> bool:
    """True for SQLite URLs that name an on-disk database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return False
    if parsed.database in (None, "", ":memory:"):
        return False
    return parsed.query.get("mode") != "memory"


class Settings(BaseSettings):
    """Job cache settings driven entirely by environment variables."""

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./data/jobs.db", validate_default=True)
    database_echo: bool = Field(default=False)
    database_pool_size: int = Field(default=20, ge=5, le=100)
    database_max_overflow: int = Field(default=30, ge=10, le=100)

    # Machine identity the cache is partitioned by
    machine_name: str = Field(default_factory=socket.gethostname, min_length=1, max_length=255)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database directory exists for file-backed SQLite."""
        if _is_sqlite_file(v):
            Path(make_url(v).database).parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    @property
    def is_memory_database(self) -> bool:
        """In-memory SQLite uses a static pool and rejects pool sizing."""
        return self.is_sqlite and not _is_sqlite_file(self.database_url)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
