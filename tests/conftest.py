"""Test configuration and fixtures for the library loans package.

1. Isolated test databases - each test gets a fresh SQLite file
2. Configuration overrides - test-specific settings, reset after every test
3. Seed data - a handful of books and users to loan between
"""

from collections.abc import Generator
from datetime import date, timedelta
from pathlib import Path

import pytest

from library_loans.config import LibraryConfig, reset_config
from library_loans.database import (
    BookRepository,
    DatabaseManager,
    LoanRepository,
    reset_db_manager,
)
from library_loans.database.schema import User
from library_loans.models import BookCreate, LoanCreate

LOAN_DATE = date(2024, 3, 1)
DUE_DATE = LOAN_DATE + timedelta(days=14)


# === Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """A temporary SQLite file per test.

    File databases (not ``:memory:``) give every session its own connection,
    which the locking tests depend on.
    """
    return tmp_path / "test_library.db"


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[LibraryConfig, None, None]:
    reset_config()
    config = LibraryConfig(database_path=test_db_path, lock_timeout=10.0, log_level="DEBUG")
    yield config
    reset_config()


@pytest.fixture
def db_manager(test_config: LibraryConfig) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(config=test_config)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def book_repo(db_manager: DatabaseManager) -> BookRepository:
    return BookRepository(db_manager)


@pytest.fixture
def loan_repo(db_manager: DatabaseManager) -> LoanRepository:
    return LoanRepository(db_manager)


# === Seed Data ===


@pytest.fixture
def borrowers(db_manager: DatabaseManager) -> list[int]:
    """Three users, returned as ids."""
    with db_manager.transaction() as session:
        users = [User(name=name) for name in ("Ana", "Bruno", "Carla")]
        session.add_all(users)
        session.flush()
        return [user.id for user in users]


@pytest.fixture
def books(book_repo: BookRepository) -> list[int]:
    """Ten available books, returned as ids (1..10 on a fresh database)."""
    return [book_repo.create(BookCreate(title=f"Book {i}")).id for i in range(1, 11)]


@pytest.fixture
def make_draft(borrowers: list[int]):
    """Build a loan draft for a book, defaulting to the first borrower."""

    def _make(book_id: int, borrower_id: int | None = None, **overrides) -> LoanCreate:
        fields = {
            "book_id": book_id,
            "borrower_id": borrower_id or borrowers[0],
            "loan_date": LOAN_DATE,
            "due_date": DUE_DATE,
        }
        fields.update(overrides)
        return LoanCreate(**fields)

    return _make


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global singletons so tests cannot leak configuration."""
    yield

    reset_config()
    reset_db_manager()
