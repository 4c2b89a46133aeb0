"""
Loan repository - the loan transaction manager.

Every mutating operation runs in its own transaction and follows the same
protocol:

1. **Lock**: read the affected book row(s) with ``SELECT ... FOR UPDATE``
2. **Check**: fail if the book is missing or already on loan
3. **Mutate**: write the ``loans`` row
4. **Flip**: write the book availability flag(s)
5. **Commit**: or roll back on any failure

The lock serializes concurrent attempts to loan the same book: the second
transaction waits for the first to finish and then sees the book as
unavailable. Reads (``list_loans``, ``get_by_id``) take no locks and open no
transaction.

Lock order is always loan row before book row(s), so update and delete
cannot deadlock against each other on the same loan.
"""

import logging

from sqlalchemy import delete, desc, select, update
from sqlalchemy.orm import Session

from ..exceptions import LoanNotFoundError, StorageError
from ..models.loan import Loan as LoanModel
from ..models.loan import LoanCreate
from .book_repository import BookRepository
from .repository import PaginatedResponse, PaginationParams, paginate
from .schema import Loan as LoanDB
from .session import DatabaseManager, get_db_manager, safe_query

logger = logging.getLogger(__name__)


class LoanRepository:
    """
    Creates, reads, updates and deletes loans while keeping each book's
    availability flag in step with the loan table.

    The repository holds no state besides its connection factory; nothing
    about books or loans is cached between calls.
    """

    def __init__(self, db_manager: DatabaseManager | None = None):
        self.db = db_manager or get_db_manager()
        self.books = BookRepository(self.db)

    def create_loan(self, draft: LoanCreate) -> LoanModel:
        """
        Loan a book.

        Args:
            draft: Loan fields without an id

        Returns:
            The stored loan with its generated id

        Raises:
            BookNotFoundError: If the book does not exist
            BookUnavailableError: If the book is already on loan
            StorageError: On database errors
        """
        with self.db.transaction() as session:
            self.books.ensure_available(session, draft.book_id)

            loan = LoanDB(
                book_id=draft.book_id,
                borrower_id=draft.borrower_id,
                loan_date=draft.loan_date,
                due_date=draft.due_date,
            )
            session.add(loan)
            safe_query(session, lambda s: s.flush(), "Failed to insert loan")

            self.books.set_availability(session, draft.book_id, False)
            created = self._loan_to_model(loan)

        logger.info("Created loan %d for book %d", created.id, created.book_id)
        return created

    def list_loans(self) -> list[LoanModel]:
        """List every loan, most recent first (id descending)."""
        query = select(LoanDB).order_by(desc(LoanDB.id))

        with self.db.read_session() as session:
            results = safe_query(
                session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to list loans",
            )
            return [self._loan_to_model(loan) for loan in results]

    def list_loans_page(self, pagination: PaginationParams) -> PaginatedResponse[LoanModel]:
        """
        One page of loans in the same order as ``list_loans``.

        Raises:
            ValueError: If the pagination parameters are out of range
            StorageError: On database errors
        """
        query = select(LoanDB).order_by(desc(LoanDB.id))

        with self.db.read_session() as session:
            return paginate(session, query, pagination, self._loan_to_model)

    def get_by_id(self, loan_id: int) -> LoanModel | None:
        """Get a loan, or None if there is no such loan."""
        with self.db.read_session() as session:
            loan = safe_query(
                session,
                lambda s: s.get(LoanDB, loan_id),
                f"Failed to get loan {loan_id}",
            )
            if loan is None:
                return None
            return self._loan_to_model(loan)

    def update_loan(self, loan: LoanModel) -> LoanModel:
        """
        Rewrite every field of a loan except its id.

        If the book changes, the new book is locked and checked, the old book
        becomes available and the new one unavailable, all in one
        transaction. Otherwise no availability flag is touched.

        Raises:
            LoanNotFoundError: If the loan does not exist
            BookNotFoundError: If the new book does not exist
            BookUnavailableError: If the new book is already on loan
            StorageError: On database errors
        """
        if self.get_by_id(loan.id) is None:
            raise LoanNotFoundError(loan.id)

        with self.db.transaction() as session:
            previous = self._lock_loan(session, loan.id)
            if previous is None:
                raise LoanNotFoundError(loan.id)
            self._apply_update(session, previous, loan)

        return loan

    def delete_loan(self, loan_id: int) -> bool:
        """
        End a loan and make its book available again.

        Deleting a loan that does not exist is a no-op.

        Returns:
            True if a loan was deleted, False if there was nothing to delete

        Raises:
            StorageError: On database errors
        """
        if self.get_by_id(loan_id) is None:
            return False

        with self.db.transaction() as session:
            loan = self._lock_loan(session, loan_id)
            if loan is None:
                # Deleted concurrently; its book was already released
                return False

            stmt = delete(LoanDB).where(LoanDB.id == loan_id)
            safe_query(session, lambda s: s.execute(stmt), f"Failed to delete loan {loan_id}")
            self.books.set_availability(session, loan.book_id, True)

        logger.info("Deleted loan %d, book %d available again", loan_id, loan.book_id)
        return True

    def _apply_update(self, session: Session, previous: LoanModel, loan: LoanModel) -> None:
        """Write ``loan`` over ``previous`` inside the caller's transaction."""
        book_changed = previous.book_id != loan.book_id
        if book_changed:
            self.books.ensure_available(session, loan.book_id)

        stmt = (
            update(LoanDB)
            .where(LoanDB.id == loan.id)
            .values(
                book_id=loan.book_id,
                borrower_id=loan.borrower_id,
                loan_date=loan.loan_date,
                due_date=loan.due_date,
            )
        )
        result = safe_query(session, lambda s: s.execute(stmt), f"Failed to update loan {loan.id}")
        if result.rowcount != 1:
            raise StorageError(f"Update of loan {loan.id} touched {result.rowcount} rows")

        if book_changed:
            self.books.set_availability(session, previous.book_id, True)
            self.books.set_availability(session, loan.book_id, False)
            logger.info(
                "Loan %d moved from book %d to book %d",
                loan.id,
                previous.book_id,
                loan.book_id,
            )
        else:
            logger.info("Updated loan %d", loan.id)

    def _lock_loan(self, session: Session, loan_id: int) -> LoanModel | None:
        """Read a loan row and lock it for the rest of the transaction."""
        query = select(LoanDB).where(LoanDB.id == loan_id).with_for_update()
        loan = safe_query(
            session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to lock loan {loan_id}",
        )
        if loan is None:
            return None
        return self._loan_to_model(loan)

    def _loan_to_model(self, loan: LoanDB) -> LoanModel:
        """Convert loan DB object to Pydantic model."""
        return LoanModel(
            id=loan.id,
            book_id=loan.book_id,
            borrower_id=loan.borrower_id,
            loan_date=loan.loan_date,
            due_date=loan.due_date,
        )
