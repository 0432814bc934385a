"""SQLAlchemy model for loan records.

Tables:
- loan_records: One row per loan; ``returned_at`` NULL means the loan is open

The partial unique index ``uq_loan_records_open_book`` allows at most one
open row per book. The database arbitrates concurrent borrows through it.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, UTCDateTime, generate_uuid, utcnow

# Fixed loan policy: due two weeks (calendar days) after borrowing
LOAN_PERIOD = timedelta(days=14)

OPEN_LOAN_INDEX = "uq_loan_records_open_book"


class LoanRecord(Base):
    """Loan record model - one borrowing of one book by one borrower."""

    __tablename__ = "loan_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    borrower_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("borrowers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Lifecycle
    borrowed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    returned_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index(
            OPEN_LOAN_INDEX,
            "book_id",
            unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<LoanRecord(id={self.id}, book_id={self.book_id}, "
            f"borrower_id={self.borrower_id}, open={self.is_open})>"
        )

    @classmethod
    def open_new(cls, borrower_id: str, book_id: str, now: datetime) -> "LoanRecord":
        """Build a complete open record borrowed at ``now``."""
        return cls(
            id=generate_uuid(),
            borrower_id=borrower_id,
            book_id=book_id,
            borrowed_at=now,
            due_date=now + LOAN_PERIOD,
            returned_at=None,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_open(self) -> bool:
        """Check if the loan is still open."""
        return self.returned_at is None

    def is_overdue(self, now: datetime) -> bool:
        """Check if the loan is open and past its due date at ``now``."""
        return self.is_open and self.due_date < now

    def days_until_due(self, now: datetime) -> int:
        """Calendar days until due (negative if overdue)."""
        return (self.due_date.date() - now.date()).days

    def days_overdue(self, now: datetime) -> int:
        """Days overdue (0 if not overdue)."""
        if not self.is_overdue(now):
            return 0
        return max(0, -self.days_until_due(now))

