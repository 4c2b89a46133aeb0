"""Configuration management for the library loans package.

Settings are loaded from ``LIBRARY_LOANS_*`` environment variables (or a
``.env`` file) and validated with Pydantic v2. The values cover the
connection factory that hands out transactional sessions:

1. Where the database lives (full URL or SQLite file path)
2. How transactions behave (isolation level, lock wait timeout)
3. Connection pooling for server databases
4. Logging
"""

import logging
import sys
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LibraryConfig(BaseSettings):
    """Runtime configuration for the loan transaction manager."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_LOANS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Database Configuration ===

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path used when no URL is given",
    )

    # === Transaction Configuration ===

    isolation_level: str | None = Field(
        default=None,
        description="Transaction isolation level for non-SQLite engines",
        pattern=r"^(READ UNCOMMITTED|READ COMMITTED|REPEATABLE READ|SERIALIZABLE)$",
    )

    lock_timeout: float = Field(
        default=5.0,
        description="Seconds a SQLite transaction waits for the write lock",
        ge=0,
    )

    # === Pool Configuration ===

    pool_size: int = Field(default=10, ge=1, le=100)

    max_overflow: int = Field(default=20, ge=0, le=100)

    # === Development Configuration ===

    echo_sql: bool = Field(
        default=False,
        description="Echo every SQL statement through the sqlalchemy.engine logger",
    )

    debug: bool = Field(default=False)

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("isolation_level", mode="before")
    @classmethod
    def normalize_isolation_level(cls, v: str | None) -> str | None:
        """Accept ``read_committed`` style spellings."""
        if v is None or v == "":
            return None
        return str(v).replace("_", " ").upper()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).upper()

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the SQLite path to an absolute one."""
        return v.absolute()

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LibraryConfig | None = None


def get_config() -> LibraryConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LibraryConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]


def configure_logging(config: LibraryConfig | None = None) -> None:
    """Install the package's stderr log handler.

    Library code only creates module loggers; applications embedding the
    package call this once at startup.
    """
    config = config or get_config()
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if config.echo_sql:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
