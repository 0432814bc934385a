"""Pydantic schemas for loan views and reports."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..directory.schemas import BookDetails, BorrowerDetails
from .models import LoanRecord

# Placeholder shown when a referenced borrower or book cannot be resolved
UNKNOWN = "Unknown"


class LoanStatus(str, Enum):
    """Status of a loan."""

    ACTIVE = "active"
    RETURNED = "returned"


class LoanView(BaseModel):
    """A loan record enriched with borrower and book details."""

    id: str
    borrower_id: str
    book_id: str
    borrowed_at: datetime
    due_date: datetime
    returned_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    status: LoanStatus
    is_overdue: bool
    days_until_due: int
    days_overdue: int

    # Related data (populated by the enricher)
    borrower_name: str = UNKNOWN
    borrower_email: str = UNKNOWN
    book_title: str = UNKNOWN
    book_author: str = UNKNOWN
    book_isbn: str = UNKNOWN

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @classmethod
    def from_record(
        cls,
        record: LoanRecord,
        now: datetime,
        borrower: Optional[BorrowerDetails] = None,
        book: Optional[BookDetails] = None,
    ) -> "LoanView":
        """Build a view of ``record`` as seen at ``now``."""
        return cls(
            id=record.id,
            borrower_id=record.borrower_id,
            book_id=record.book_id,
            borrowed_at=record.borrowed_at,
            due_date=record.due_date,
            returned_at=record.returned_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
            status=LoanStatus.ACTIVE if record.is_open else LoanStatus.RETURNED,
            is_overdue=record.is_overdue(now),
            days_until_due=record.days_until_due(now),
            days_overdue=record.days_overdue(now),
            borrower_name=borrower.name if borrower else UNKNOWN,
            borrower_email=borrower.email if borrower else UNKNOWN,
            book_title=book.title if book else UNKNOWN,
            book_author=book.author if book else UNKNOWN,
            book_isbn=book.isbn if book else UNKNOWN,
        )


class LendingStats(BaseModel):
    """Overall lending statistics."""

    total_loans: int
    active_loans: int
    overdue_loans: int
    returned_loans: int


class OverdueReport(BaseModel):
    """Report of overdue loans."""

    loans: list[LoanView]
    total_overdue: int
    oldest_overdue_days: int
