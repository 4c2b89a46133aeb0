"""
Loan models for the library loans package.

- LoanCreate: a draft loan handed to ``create_loan`` (no id yet)
- Loan: a persisted loan, including the storage-assigned id

A loan has no status: every stored loan is active until it is deleted.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LoanCreate(BaseModel):
    """A loan that has not been stored yet."""

    model_config = ConfigDict(frozen=True)

    book_id: int = Field(
        ...,
        description="ID of the book being loaned",
        gt=0,
        examples=[5, 42],
    )

    borrower_id: int = Field(
        ...,
        description="ID of the borrowing user",
        gt=0,
        examples=[1, 17],
    )

    loan_date: date = Field(
        ...,
        description="Date the loan was issued",
        examples=["2024-03-01"],
    )

    due_date: date = Field(
        ...,
        description="Date the book is expected back",
        examples=["2024-03-15"],
    )

    @model_validator(mode="after")
    def validate_dates(self) -> "LoanCreate":
        """Ensure the book is not due before it was loaned."""
        if self.due_date < self.loan_date:
            raise ValueError("Due date cannot be before loan date")
        return self


class Loan(LoanCreate):
    """A stored loan. The id never changes once assigned."""

    id: int = Field(
        ...,
        description="Storage-assigned surrogate key",
        gt=0,
        examples=[1, 1024],
    )
