"""
Book repository for the library loans package.

The loan manager never owns books; it only needs to:

1. **Lock and check** a book's availability inside the caller's transaction
2. **Flip** the availability flag inside that same transaction
3. **Read** a book without locking (catalog lookups, tests, audits)

The lock-and-check helpers take the caller's session on purpose: the lock
must be held by the transaction that later writes the flag, otherwise a
concurrent loan of the same book could slip in between check and write.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..exceptions import BookNotFoundError, BookUnavailableError
from ..models.book import Book as BookModel
from ..models.book import BookCreate
from .schema import Book as BookDB
from .schema import Loan as LoanDB
from .session import DatabaseManager, get_db_manager, safe_query

logger = logging.getLogger(__name__)


class BookRepository:
    """Availability reads and writes for the ``books`` table."""

    def __init__(self, db_manager: DatabaseManager | None = None):
        self.db = db_manager or get_db_manager()

    # Transaction-scoped helpers

    def lock_availability(self, session: Session, book_id: int) -> bool:
        """
        Read a book's availability flag and lock its row.

        The lock is held until ``session``'s transaction ends, so concurrent
        transactions locking the same book wait here.

        Raises:
            BookNotFoundError: If no such book exists
            StorageError: On database errors (including lock wait timeouts)
        """
        query = select(BookDB.available).where(BookDB.id == book_id).with_for_update()
        row = safe_query(
            session,
            lambda s: s.execute(query).one_or_none(),
            f"Failed to lock book {book_id}",
        )
        if row is None:
            raise BookNotFoundError(book_id)
        return bool(row.available)

    def ensure_available(self, session: Session, book_id: int) -> None:
        """
        Lock a book and make sure no loan holds it.

        Raises:
            BookNotFoundError: If no such book exists
            BookUnavailableError: If the book is already on loan
        """
        if not self.lock_availability(session, book_id):
            raise BookUnavailableError(book_id)

    def set_availability(self, session: Session, book_id: int, available: bool) -> int:
        """
        Write a book's availability flag.

        Updating a missing book is a silent no-op; the number of rows touched
        is returned.
        """
        stmt = update(BookDB).where(BookDB.id == book_id).values(available=available)
        result = safe_query(
            session,
            lambda s: s.execute(stmt),
            f"Failed to update availability of book {book_id}",
        )
        return result.rowcount

    # Standalone operations

    def get_by_id(self, book_id: int) -> BookModel | None:
        """Get a book without locking it."""
        with self.db.read_session() as session:
            book = safe_query(
                session,
                lambda s: s.get(BookDB, book_id),
                f"Failed to get book {book_id}",
            )
            if book is None:
                return None
            return self._to_model(book)

    def create(self, data: BookCreate) -> BookModel:
        """Add a book to the catalog."""
        with self.db.transaction() as session:
            book = BookDB(title=data.title, available=data.available)
            session.add(book)
            safe_query(session, lambda s: s.flush(), "Failed to create book")
            created = self._to_model(book)

        logger.info("Created book %d (%s)", created.id, created.title)
        return created

    def find_inconsistent_books(self) -> list[int]:
        """
        Audit the availability invariant.

        Returns the ids of books whose flag disagrees with the loan table:
        available but loaned, unavailable with no loan, or held by more
        than one loan.
        """
        loan_count = func.count(LoanDB.id)
        query = (
            select(BookDB.id, BookDB.available, loan_count.label("loan_count"))
            .outerjoin(LoanDB, LoanDB.book_id == BookDB.id)
            .group_by(BookDB.id, BookDB.available)
            .order_by(BookDB.id)
        )
        with self.db.read_session() as session:
            rows = safe_query(
                session,
                lambda s: s.execute(query).all(),
                "Failed to audit book availability",
            )

        inconsistent = [
            row.id
            for row in rows
            if not ((row.available and row.loan_count == 0) or (not row.available and row.loan_count == 1))
        ]
        if inconsistent:
            logger.warning("Availability flag out of sync for books %s", inconsistent)
        return inconsistent

    def _to_model(self, book: BookDB) -> BookModel:
        return BookModel(id=book.id, title=book.title, available=book.available)
