"""Loan lifecycle manager for borrow and return operations.

A loan moves NONEXISTENT -> OPEN (borrow) -> CLOSED (return). Closed records
are terminal; borrowing the same book again creates a new record.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..db.models import utcnow
from ..directory.lookups import BorrowerLookup, CatalogLookup
from ..errors import (
    BookAlreadyBorrowedError,
    BookNotBorrowedError,
    BookNotFoundError,
    BorrowerNotFoundError,
    OpenLoanConflictError,
    UnauthorizedBorrowerError,
)
from .enrichment import LoanEnricher
from .models import LoanRecord
from .schemas import LoanView
from .store import LoanRecordStore

logger = logging.getLogger(__name__)


class LoanManager:
    """Manages the borrow/return lifecycle of loan records."""

    def __init__(
        self,
        store: LoanRecordStore,
        catalog: CatalogLookup,
        borrowers: BorrowerLookup,
        enricher: Optional[LoanEnricher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize loan manager.

        Args:
            store: Record store for loan records
            catalog: Book existence and details lookup
            borrowers: Borrower existence and details lookup
            enricher: Builds enriched views; created from the lookups if omitted
            clock: Returns the current aware instant
        """
        self.store = store
        self.catalog = catalog
        self.borrowers = borrowers
        self.clock = clock
        self.enricher = enricher or LoanEnricher(catalog, borrowers, clock)

    async def borrow(self, borrower_id: str, book_id: str) -> LoanView:
        """Open a loan of a book for a borrower.

        Args:
            borrower_id: Borrower taking the book
            book_id: Book being borrowed

        Returns:
            Enriched view of the new open record

        Raises:
            BorrowerNotFoundError: Borrower does not exist
            BookNotFoundError: Book does not exist
            BookAlreadyBorrowedError: Book already has an open loan
        """
        logger.info("Processing borrow request for borrower %s and book %s", borrower_id, book_id)

        if not await self.borrowers.borrower_exists(borrower_id):
            logger.info("Borrow rejected: borrower %s not found", borrower_id)
            raise BorrowerNotFoundError(borrower_id)

        if not await self.catalog.book_exists(book_id):
            logger.info("Borrow rejected: book %s not found", book_id)
            raise BookNotFoundError(book_id)

        # Fast path only; the open-loan index decides races
        if await self.store.find_open_by_book_id(book_id) is not None:
            logger.info("Borrow rejected: book %s already borrowed", book_id)
            raise BookAlreadyBorrowedError(book_id)

        now = self.clock()
        record = LoanRecord.open_new(borrower_id, book_id, now)

        try:
            record = await self.store.insert(record)
        except OpenLoanConflictError as exc:
            logger.info("Borrow rejected: concurrent borrow won book %s", book_id)
            raise BookAlreadyBorrowedError(book_id) from exc

        logger.info("Successfully borrowed book. Record ID: %s", record.id)
        return await self.enricher.enrich(record, now)

    async def return_book(self, borrower_id: str, book_id: str) -> LoanView:
        """Close the open loan of a book.

        Args:
            borrower_id: Borrower returning the book
            book_id: Book being returned

        Returns:
            Enriched view of the closed record

        Raises:
            BookNotBorrowedError: Book has no open loan
            UnauthorizedBorrowerError: Book is held by a different borrower
        """
        logger.info("Processing return request for borrower %s and book %s", borrower_id, book_id)

        record = await self.store.find_open_by_book_id(book_id)
        if record is None:
            logger.info("Return rejected: book %s is not borrowed", book_id)
            raise BookNotBorrowedError(book_id)

        if record.borrower_id != borrower_id:
            logger.info(
                "Return rejected: book %s is held by %s, not %s",
                book_id,
                record.borrower_id,
                borrower_id,
            )
            raise UnauthorizedBorrowerError(borrower_id, book_id)

        now = self.clock()
        record.returned_at = now
        if not await self.store.update(record):
            # Closed by a concurrent return between the read and the write
            logger.info("Return rejected: loan %s was already closed", record.id)
            raise BookNotBorrowedError(book_id)

        logger.info("Successfully returned book. Record ID: %s", record.id)
        return await self.enricher.enrich(record, now)
