"""
Database package for the library loans package.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and the transactional connection factory (session.py)
- Repositories that keep loans and book availability consistent
"""

from .book_repository import BookRepository
from .loan_repository import LoanRepository
from .repository import PaginatedResponse, PaginationParams
from .schema import Base, Book, Loan, User
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_query,
)

__all__ = [
    "Base",
    "Book",
    "BookRepository",
    "DatabaseManager",
    "Loan",
    "LoanRepository",
    "PaginatedResponse",
    "PaginationParams",
    "User",
    "get_db_manager",
    "reset_db_manager",
    "safe_query",
]
