"""
Tests for book availability helpers.

The lock-and-check helpers run inside a caller's transaction; the audit
reads the whole catalog.
"""

from datetime import date

import pytest

from library_loans.database import Loan as LoanDB
from library_loans.exceptions import BookNotFoundError, BookUnavailableError
from library_loans.models import BookCreate


class TestBookReads:
    def test_create_and_get(self, book_repo):
        book = book_repo.create(BookCreate(title="Quincas Borba"))

        fetched = book_repo.get_by_id(book.id)

        assert fetched == book
        assert fetched.available is True

    def test_get_missing_book(self, book_repo):
        assert book_repo.get_by_id(404) is None


class TestLockHelpers:
    def test_lock_availability_reads_flag(self, db_manager, book_repo, books):
        with db_manager.transaction() as session:
            assert book_repo.lock_availability(session, books[0]) is True

    def test_lock_missing_book(self, db_manager, book_repo, books):
        with pytest.raises(BookNotFoundError):
            with db_manager.transaction() as session:
                book_repo.lock_availability(session, 404)

    def test_ensure_available_rejects_loaned_book(self, db_manager, book_repo, books):
        with db_manager.transaction() as session:
            book_repo.set_availability(session, books[0], False)

        with pytest.raises(BookUnavailableError):
            with db_manager.transaction() as session:
                book_repo.ensure_available(session, books[0])

    def test_set_availability_on_missing_book_is_noop(self, db_manager, book_repo, books):
        with db_manager.transaction() as session:
            assert book_repo.set_availability(session, 404, True) == 0
            assert book_repo.set_availability(session, books[0], True) == 1


class TestAvailabilityAudit:
    """The audit flags any book whose flag disagrees with the loan table."""

    def test_consistent_catalog(self, book_repo, books):
        assert book_repo.find_inconsistent_books() == []

    def test_flag_cleared_without_loan(self, db_manager, book_repo, books):
        with db_manager.transaction() as session:
            book_repo.set_availability(session, books[1], False)

        assert book_repo.find_inconsistent_books() == [books[1]]

    def test_loan_without_cleared_flag(self, db_manager, book_repo, books, borrowers):
        with db_manager.transaction() as session:
            session.add(
                LoanDB(
                    book_id=books[2],
                    borrower_id=borrowers[0],
                    loan_date=date(2024, 1, 1),
                    due_date=date(2024, 1, 15),
                )
            )

        assert book_repo.find_inconsistent_books() == [books[2]]

    def test_book_loaned_twice(self, db_manager, book_repo, books, borrowers):
        with db_manager.transaction() as session:
            for borrower_id in borrowers[:2]:
                session.add(
                    LoanDB(
                        book_id=books[3],
                        borrower_id=borrower_id,
                        loan_date=date(2024, 1, 1),
                        due_date=date(2024, 1, 15),
                    )
                )
            book_repo.set_availability(session, books[3], False)

        assert book_repo.find_inconsistent_books() == [books[3]]
