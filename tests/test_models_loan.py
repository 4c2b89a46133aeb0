"""Tests for the loan and book Pydantic models."""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from library_loans.models import Book, BookCreate, Loan, LoanCreate


class TestLoanCreate:
    """Test loan draft validation."""

    def test_valid_draft(self):
        draft = LoanCreate(
            book_id=5,
            borrower_id=1,
            loan_date=date(2024, 3, 1),
            due_date=date(2024, 3, 15),
        )

        assert draft.due_date - draft.loan_date == timedelta(days=14)

    def test_dates_parse_from_strings(self):
        draft = LoanCreate(book_id=5, borrower_id=1, loan_date="2024-03-01", due_date="2024-03-15")

        assert draft.loan_date == date(2024, 3, 1)

    def test_same_day_return_allowed(self):
        draft = LoanCreate(
            book_id=5, borrower_id=1, loan_date=date(2024, 3, 1), due_date=date(2024, 3, 1)
        )

        assert draft.due_date == draft.loan_date

    def test_due_date_before_loan_date(self):
        with pytest.raises(ValidationError, match="Due date cannot be before loan date"):
            LoanCreate(
                book_id=5, borrower_id=1, loan_date=date(2024, 3, 15), due_date=date(2024, 3, 1)
            )

    @pytest.mark.parametrize("field", ["book_id", "borrower_id"])
    def test_ids_must_be_positive(self, field):
        fields = {
            "book_id": 5,
            "borrower_id": 1,
            "loan_date": date(2024, 3, 1),
            "due_date": date(2024, 3, 15),
        }
        fields[field] = 0

        with pytest.raises(ValidationError):
            LoanCreate(**fields)

    def test_draft_is_immutable(self):
        draft = LoanCreate(
            book_id=5, borrower_id=1, loan_date=date(2024, 3, 1), due_date=date(2024, 3, 15)
        )

        with pytest.raises(ValidationError):
            draft.book_id = 6


class TestLoan:
    def test_loan_requires_id(self):
        with pytest.raises(ValidationError):
            Loan(book_id=5, borrower_id=1, loan_date=date(2024, 3, 1), due_date=date(2024, 3, 15))

    def test_model_copy_keeps_id(self):
        loan = Loan(
            id=10,
            book_id=5,
            borrower_id=1,
            loan_date=date(2024, 3, 1),
            due_date=date(2024, 3, 15),
        )

        moved = loan.model_copy(update={"book_id": 9, "due_date": loan.due_date + timedelta(days=7)})

        assert moved.id == 10
        assert moved.book_id == 9
        assert loan.book_id == 5

    def test_json_serialization(self):
        loan = Loan(
            id=10,
            book_id=5,
            borrower_id=1,
            loan_date=date(2024, 3, 1),
            due_date=date(2024, 3, 15),
        )

        assert loan.model_dump(mode="json") == {
            "id": 10,
            "book_id": 5,
            "borrower_id": 1,
            "loan_date": "2024-03-01",
            "due_date": "2024-03-15",
        }


class TestBook:
    def test_book_defaults_to_available(self):
        assert BookCreate(title="Dom Casmurro").available is True

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="")

    def test_book_id_positive(self):
        with pytest.raises(ValidationError):
            Book(id=0, title="Dom Casmurro")
