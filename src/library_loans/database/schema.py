"""
SQLAlchemy database schema for the library loans package.

The ``books`` and ``users`` tables belong to the catalog; the loan
transaction manager only reads a book's existence and reads/writes its
``available`` flag. The ``loans`` table is owned by the manager.

Column names of ``loans`` follow the existing catalog database
(``id_livro``, ``id_usuario``, ``data_emprestimo``, ``data_devolucao``);
the mapped attributes use English names.

Availability invariant: ``books.available`` is false iff exactly one row of
``loans`` references the book.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Book(Base):
    """
    Books table - catalog entries with an availability flag.

    Row locks on this table (``SELECT ... FOR UPDATE``) serialize concurrent
    attempts to loan the same book.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, default="")
    available = Column(Boolean, nullable=False, default=True)

    loans = relationship("Loan", back_populates="book")

    __table_args__ = (Index("idx_book_available", "available"),)


class User(Base):
    """Users table - borrowers. Not validated by the loan manager."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)

    loans = relationship("Loan", back_populates="borrower")


class Loan(Base):
    """
    Loans table - one row per active loan.

    There is no status column: deleting the row is the only way a loan ends.
    """

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column("id_livro", Integer, ForeignKey("books.id"), nullable=False)
    borrower_id = Column("id_usuario", Integer, ForeignKey("users.id"), nullable=False)
    loan_date = Column("data_emprestimo", Date, nullable=False)
    due_date = Column("data_devolucao", Date, nullable=False)

    book = relationship("Book", back_populates="loans")
    borrower = relationship("User", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_book", "id_livro"),
        Index("idx_loan_borrower", "id_usuario"),
        CheckConstraint("data_devolucao >= data_emprestimo", name="check_due_after_loan"),
    )
