"""Pydantic schemas for books and borrowers."""

from pydantic import BaseModel, Field


class BookCreate(BaseModel):
    """Schema for adding a book to the catalog."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=255)
    isbn: str = Field(..., min_length=1, max_length=20)


class BorrowerCreate(BaseModel):
    """Schema for registering a borrower."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)


class BookDetails(BaseModel):
    """Human-readable projection of a book used to enrich loans."""

    title: str
    author: str
    isbn: str

    model_config = {"from_attributes": True}


class BorrowerDetails(BaseModel):
    """Human-readable projection of a borrower used to enrich loans."""

    name: str
    email: str

    model_config = {"from_attributes": True}


class BookSummary(BookDetails):
    """Catalog entry with its ID, used for catalog listings."""

    id: str
