"""
Library loans package.

Manages loan records for a library catalog while guaranteeing that a book is
loaned to at most one borrower at a time.

Key Components:
- models: Pydantic models for loans and books
- database: SQLAlchemy schema, session management and repositories
- config: Configuration management with Pydantic v2
- exceptions: Errors raised by loan operations
"""

__version__ = "0.1.0"

from . import database
from .database import DatabaseManager, LoanRepository
from .exceptions import (
    BookNotFoundError,
    BookUnavailableError,
    LoanError,
    LoanNotFoundError,
    NotFoundError,
    StorageError,
)
from .models import Loan, LoanCreate

__all__ = [
    "BookNotFoundError",
    "BookUnavailableError",
    "DatabaseManager",
    "Loan",
    "LoanCreate",
    "LoanError",
    "LoanNotFoundError",
    "LoanRepository",
    "NotFoundError",
    "StorageError",
    "__version__",
    "database",
]
