"""Exceptions raised by the loan transaction manager."""


class LoanError(Exception):
    """Base exception for loan and availability operations."""


class NotFoundError(LoanError):
    """Raised when a referenced entity does not exist."""


class BookNotFoundError(NotFoundError):
    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"Book {book_id} not found")


class LoanNotFoundError(NotFoundError):
    def __init__(self, loan_id: int):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} not found")


class BookUnavailableError(LoanError):
    """Raised when a book is already held by another loan."""

    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"Book {book_id} is already on loan")


class StorageError(LoanError):
    """Raised for any storage or connectivity fault.

    Covers statement failures, lock wait timeouts, deadlocks and
    commit/rollback failures. The transaction has always been rolled back
    by the time this reaches the caller.
    """
