"""Record store for loan records.

The store is the only code that touches the ``loan_records`` table. Each call
runs in its own session and transaction. Inserts rely on the open-loan index
rather than on a prior read, so a losing concurrent insert surfaces as
``OpenLoanConflictError``.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db.database import Database
from ..errors import MissingLoanReferenceError, OpenLoanConflictError, StorageError
from .models import OPEN_LOAN_INDEX, LoanRecord

logger = logging.getLogger(__name__)

# Fragments identifying an open-loan index violation in driver messages.
# PostgreSQL names the index; SQLite names the indexed column.
_OPEN_LOAN_MARKERS = (OPEN_LOAN_INDEX, "loan_records.book_id")


def is_open_loan_violation(exc: IntegrityError) -> bool:
    """Check whether an IntegrityError came from the open-loan index."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return any(marker in message for marker in _OPEN_LOAN_MARKERS)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    """Check whether an IntegrityError came from a borrower or book reference."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return "foreign key" in message.lower()


class LoanRecordStore:
    """Durable storage of loan records."""

    def __init__(self, db: Database):
        """Initialize record store.

        Args:
            db: Database instance
        """
        self.db = db

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert(self, record: LoanRecord) -> LoanRecord:
        """Insert a new loan record.

        Args:
            record: Fully built record

        Returns:
            The stored record, detached from its session

        Raises:
            OpenLoanConflictError: An open loan already exists for the book
            MissingLoanReferenceError: Borrower or book row does not exist
            StorageError: Any other database failure
        """
        try:
            async with self.db.get_session() as session:
                session.add(record)
                await session.commit()
                session.expunge(record)
        except IntegrityError as exc:
            if is_open_loan_violation(exc):
                raise OpenLoanConflictError(record.book_id) from exc
            if is_foreign_key_violation(exc):
                logger.warning(
                    "Loan insert references missing borrower %s or book %s",
                    record.borrower_id,
                    record.book_id,
                )
                raise MissingLoanReferenceError(record.borrower_id, record.book_id) from exc
            logger.error("Integrity failure inserting loan for book %s: %s", record.book_id, exc)
            raise StorageError(f"Failed to insert loan record: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            logger.error("Storage failure inserting loan for book %s: %s", record.book_id, exc)
            raise StorageError(f"Failed to insert loan record: {exc}") from exc
        return record

    async def update(self, record: LoanRecord) -> bool:
        """Persist the closing of an open record.

        The write only applies while the stored row is still open, so two
        racing returns cannot both close the same loan.

        Args:
            record: Record with ``returned_at`` set

        Returns:
            True if the row was closed, False if it was no longer open
        """
        if record.returned_at is None:
            raise ValueError("Only closing a loan (setting returned_at) is persisted")

        stmt = (
            update(LoanRecord)
            .where(LoanRecord.id == record.id, LoanRecord.returned_at.is_(None))
            .values(returned_at=record.returned_at, updated_at=record.returned_at)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.db.get_session() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Storage failure closing loan %s: %s", record.id, exc)
            raise StorageError(f"Failed to update loan record {record.id}: {exc}") from exc

        if result.rowcount == 0:
            return False
        record.updated_at = record.returned_at
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def _fetch_all(self, stmt: Select) -> list[LoanRecord]:
        try:
            async with self.db.get_session() as session:
                records = list((await session.execute(stmt)).scalars().all())
                for record in records:
                    session.expunge(record)
                return records
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read loan records: {exc}") from exc

    async def _fetch_one(self, stmt: Select) -> Optional[LoanRecord]:
        try:
            async with self.db.get_session() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
                if record:
                    session.expunge(record)
                return record
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read loan record: {exc}") from exc

    async def _count(self, *criteria) -> int:
        stmt = select(func.count()).select_from(LoanRecord)
        if criteria:
            stmt = stmt.where(*criteria)
        try:
            async with self.db.get_session() as session:
                return (await session.execute(stmt)).scalar() or 0
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to count loan records: {exc}") from exc

    async def find_by_id(self, record_id: str) -> Optional[LoanRecord]:
        return await self._fetch_one(select(LoanRecord).where(LoanRecord.id == record_id))

    async def find_open_by_book_id(self, book_id: str) -> Optional[LoanRecord]:
        """Get the open record for a book, if any."""
        stmt = select(LoanRecord).where(
            LoanRecord.book_id == book_id,
            LoanRecord.returned_at.is_(None),
        )
        return await self._fetch_one(stmt)

    async def find_open_book_ids(self) -> set[str]:
        """Get the IDs of books that currently have an open loan."""
        stmt = select(LoanRecord.book_id).where(LoanRecord.returned_at.is_(None))
        try:
            async with self.db.get_session() as session:
                return set((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read open loans: {exc}") from exc

    async def find_all(self) -> list[LoanRecord]:
        return await self._fetch_all(
            select(LoanRecord).order_by(LoanRecord.borrowed_at.desc())
        )

    async def find_all_open(self) -> list[LoanRecord]:
        stmt = (
            select(LoanRecord)
            .where(LoanRecord.returned_at.is_(None))
            .order_by(LoanRecord.borrowed_at.desc())
        )
        return await self._fetch_all(stmt)

    async def find_by_borrower_id(self, borrower_id: str) -> list[LoanRecord]:
        stmt = (
            select(LoanRecord)
            .where(LoanRecord.borrower_id == borrower_id)
            .order_by(LoanRecord.borrowed_at.desc())
        )
        return await self._fetch_all(stmt)

    async def find_open_by_borrower_id(self, borrower_id: str) -> list[LoanRecord]:
        stmt = (
            select(LoanRecord)
            .where(
                LoanRecord.borrower_id == borrower_id,
                LoanRecord.returned_at.is_(None),
            )
            .order_by(LoanRecord.borrowed_at.desc())
        )
        return await self._fetch_all(stmt)

    async def find_by_book_id(self, book_id: str) -> list[LoanRecord]:
        stmt = (
            select(LoanRecord)
            .where(LoanRecord.book_id == book_id)
            .order_by(LoanRecord.borrowed_at.desc())
        )
        return await self._fetch_all(stmt)

    async def find_overdue(self, now: datetime) -> list[LoanRecord]:
        """Get open records whose due date is before ``now``."""
        stmt = (
            select(LoanRecord)
            .where(
                LoanRecord.returned_at.is_(None),
                LoanRecord.due_date < now,
            )
            .order_by(LoanRecord.due_date)
        )
        return await self._fetch_all(stmt)

    async def find_due_between(self, start: datetime, end: datetime) -> list[LoanRecord]:
        """Get open records due in the window ``[start, end]``."""
        stmt = (
            select(LoanRecord)
            .where(
                LoanRecord.returned_at.is_(None),
                LoanRecord.due_date >= start,
                LoanRecord.due_date <= end,
            )
            .order_by(LoanRecord.due_date)
        )
        return await self._fetch_all(stmt)

    async def count_all(self) -> int:
        return await self._count()

    async def count_open(self) -> int:
        return await self._count(LoanRecord.returned_at.is_(None))

    async def count_overdue(self, now: datetime) -> int:
        return await self._count(
            LoanRecord.returned_at.is_(None),
            LoanRecord.due_date < now,
        )
