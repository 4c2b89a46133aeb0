"""
Database session management for the library loans package.

``DatabaseManager`` is the connection factory of the loan transaction
manager. It hands out a fresh session per call and provides two scopes:

1. ``transaction()`` - an explicit transaction that commits on success and
   always rolls back on any exception before re-raising
2. ``read_session()`` - unlocked reads with no transaction of their own

SQLite notes:
- ``SELECT ... FOR UPDATE`` compiles to a plain SELECT, so transactions are
  opened with ``BEGIN IMMEDIATE`` instead. That takes the database write lock
  up front and gives the same serialization of concurrent availability checks.
- The driver's own transaction handling is switched off so SQLAlchemy's
  ``begin`` event decides how (and whether) a transaction starts.
"""

import logging
import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import LibraryConfig, get_config
from ..exceptions import StorageError
from .schema import Base

logger = logging.getLogger(__name__)

# Execution option marking connections used for unlocked reads
READ_ONLY_OPTION = "library_loans_read_only"

T = TypeVar("T")


class DatabaseManager:
    """
    Owns the engine and the session factories.

    One manager is shared by every repository; each public repository
    operation asks it for its own short-lived session.
    """

    def __init__(self, database_url: str | None = None, config: LibraryConfig | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, taken from configuration.
            config: Settings to use instead of the global configuration.
        """
        self.config = config or get_config()
        if database_url is None:
            database_url = self.config.get_database_url()

        self.database_url = database_url
        self._ensure_sqlite_directory()

        # In-memory SQLite runs on one shared connection, so sessions take turns
        self._shared_connection_lock = threading.RLock() if self.uses_shared_connection else None
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._read_session_factory: sessionmaker | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def uses_shared_connection(self) -> bool:
        """True for in-memory SQLite, where every session shares one connection."""
        if not self.is_sqlite:
            return False
        database = make_url(self.database_url).database
        return not database or database == ":memory:"

    def _ensure_sqlite_directory(self) -> None:
        """Create the parent directory of a SQLite database file."""
        if not self.is_sqlite or self.uses_shared_connection:
            return
        database = make_url(self.database_url).database
        if database.startswith("file:"):
            return
        Path(database).absolute().parent.mkdir(parents=True, exist_ok=True)

    def _connection_guard(self):
        if self._shared_connection_lock is None:
            return nullcontext()
        return self._shared_connection_lock

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.is_sqlite:
                self._engine = self._create_sqlite_engine()
            else:
                engine_kwargs = {
                    "pool_size": self.config.pool_size,
                    "max_overflow": self.config.max_overflow,
                    "pool_pre_ping": True,
                    "echo": self.config.echo_sql,
                }
                if self.config.isolation_level:
                    engine_kwargs["isolation_level"] = self.config.isolation_level
                self._engine = create_engine(self.database_url, **engine_kwargs)

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    def _create_sqlite_engine(self) -> Engine:
        engine_kwargs = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": self.config.lock_timeout,
            },
            "echo": self.config.echo_sql,
        }
        if self.uses_shared_connection:
            # A single shared connection keeps the in-memory database alive
            engine_kwargs["poolclass"] = StaticPool

        engine = create_engine(self.database_url, **engine_kwargs)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
            # Disable pysqlite's implicit BEGIN; the "begin" listener below emits it
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            if conn.get_execution_options().get(READ_ONLY_OPTION):
                return
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    @property
    def session_factory(self) -> sessionmaker:
        """Factory for transactional sessions."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    @property
    def read_session_factory(self) -> sessionmaker:
        """Factory for sessions used by unlocked reads."""
        if self._read_session_factory is None:
            self._read_session_factory = sessionmaker(
                bind=self.engine.execution_options(**{READ_ONLY_OPTION: True}),
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._read_session_factory

    def create_session(self) -> Session:
        """
        Create a new transactional session.

        This is the connection factory: every call returns an independent
        session with its own connection checkout.
        """
        return self.session_factory()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for a single mutating operation.

        ```python
        with db_manager.transaction() as session:
            ...  # locking reads and writes
        # committed here, or rolled back if anything raised
        ```

        Domain exceptions propagate unchanged after the rollback. SQLAlchemy
        errors, including a failing commit, surface as ``StorageError``.

        On in-memory SQLite, concurrent callers wait for each other here.
        """
        with self._connection_guard():
            session = self.create_session()
            try:
                session.begin()
                yield session
                session.commit()
                logger.debug("Database transaction committed successfully")
            except SQLAlchemyError as e:
                logger.exception("Database error, rolling back")
                _rollback_quietly(session)
                raise StorageError(f"Database transaction failed: {e!s}") from e
            except Exception:
                _rollback_quietly(session)
                raise
            finally:
                session.close()

    @contextmanager
    def read_session(self) -> Generator[Session, None, None]:
        """Provide a session for reads that take no locks."""
        with self._connection_guard():
            session = self.read_session_factory()
            try:
                yield session
            finally:
                session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the schema.

        Args:
            drop_existing: If True, drop all tables before creating

        Note:
            Production schemas are owned by the catalog's migrations. This
            method is for development and testing.
        """
        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=self.engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None
        self._read_session_factory = None


def _rollback_quietly(session: Session) -> None:
    try:
        session.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback failed")


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Close and forget the global database manager."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, converting driver failures into ``StorageError``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Prefix for the raised error

    Raises:
        StorageError: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise StorageError(f"{error_msg}: {e!s}") from e
