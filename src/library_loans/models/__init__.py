"""
Library loans models.

Pydantic models returned by the repositories:
- Book: catalog entry with its availability flag
- Loan / LoanCreate: stored loans and loan drafts
"""

from .book import Book, BookCreate
from .loan import Loan, LoanCreate

__all__ = [
    "Book",
    "BookCreate",
    "Loan",
    "LoanCreate",
]
