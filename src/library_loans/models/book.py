"""
Book models for the library loans package.

Books belong to the catalog. Loans only care whether a book exists and
whether its availability flag is set.
"""

from pydantic import BaseModel, Field


class BookCreate(BaseModel):
    """Catalog entry used to seed books."""

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["Dom Casmurro", "The Great Gatsby"],
    )

    available: bool = Field(
        default=True,
        description="False while the book is held by a loan",
    )


class Book(BookCreate):
    id: int = Field(..., gt=0)
