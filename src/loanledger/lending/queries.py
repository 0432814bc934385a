"""Read-side queries over loan records.

Loan listings return enriched ``LoanView`` objects. Queries scoped to a
borrower or book check that it exists first.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..db.models import utcnow
from ..directory.lookups import BorrowerLookup, CatalogLookup
from ..directory.schemas import BookSummary
from ..errors import BookNotFoundError, BorrowerNotFoundError
from .enrichment import LoanEnricher
from .schemas import LendingStats, LoanView, OverdueReport
from .store import LoanRecordStore

logger = logging.getLogger(__name__)


class LoanQueries:
    """Query surface for loan records."""

    def __init__(
        self,
        store: LoanRecordStore,
        catalog: CatalogLookup,
        borrowers: BorrowerLookup,
        enricher: Optional[LoanEnricher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.catalog = catalog
        self.borrowers = borrowers
        self.clock = clock
        self.enricher = enricher or LoanEnricher(catalog, borrowers, clock)

    async def _require_borrower(self, borrower_id: str) -> None:
        if not await self.borrowers.borrower_exists(borrower_id):
            raise BorrowerNotFoundError(borrower_id)

    async def _require_book(self, book_id: str) -> None:
        if not await self.catalog.book_exists(book_id):
            raise BookNotFoundError(book_id)

    async def list_all(self) -> list[LoanView]:
        """List every loan record, newest first."""
        logger.debug("Retrieving all loan records")
        return await self.enricher.enrich_all(await self.store.find_all())

    async def list_active(self) -> list[LoanView]:
        """List open loans."""
        logger.debug("Retrieving active loan records")
        return await self.enricher.enrich_all(await self.store.find_all_open())

    async def list_overdue(self, now: Optional[datetime] = None) -> list[LoanView]:
        """List open loans due before ``now``, most overdue first."""
        now = now or self.clock()
        logger.debug("Retrieving loan records overdue at %s", now.isoformat())
        return await self.enricher.enrich_all(await self.store.find_overdue(now), now)

    async def list_by_borrower(self, borrower_id: str) -> list[LoanView]:
        """List every loan of a borrower.

        Raises:
            BorrowerNotFoundError: Borrower does not exist
        """
        await self._require_borrower(borrower_id)
        records = await self.store.find_by_borrower_id(borrower_id)
        return await self.enricher.enrich_all(records)

    async def list_active_by_borrower(self, borrower_id: str) -> list[LoanView]:
        """List open loans of a borrower.

        Raises:
            BorrowerNotFoundError: Borrower does not exist
        """
        await self._require_borrower(borrower_id)
        records = await self.store.find_open_by_borrower_id(borrower_id)
        return await self.enricher.enrich_all(records)

    async def list_by_book(self, book_id: str) -> list[LoanView]:
        """List the loan history of a book.

        Raises:
            BookNotFoundError: Book does not exist
        """
        await self._require_book(book_id)
        records = await self.store.find_by_book_id(book_id)
        return await self.enricher.enrich_all(records)

    async def is_available(self, book_id: str) -> bool:
        """Check whether a book can be borrowed right now.

        Raises:
            BookNotFoundError: Book does not exist
        """
        await self._require_book(book_id)
        return await self.store.find_open_by_book_id(book_id) is None

    async def list_matching(
        self,
        borrower_id: Optional[str] = None,
        book_id: Optional[str] = None,
        active_only: bool = False,
        overdue_only: bool = False,
        now: Optional[datetime] = None,
    ) -> list[LoanView]:
        """List loans matching every given filter.

        Args:
            borrower_id: Only loans of this borrower
            book_id: Only loans of this book
            active_only: Only open loans
            overdue_only: Only open loans due before ``now``
            now: Evaluation instant, defaults to the clock

        Raises:
            BorrowerNotFoundError: Borrower does not exist
            BookNotFoundError: Book does not exist
        """
        now = now or self.clock()
        if borrower_id is not None:
            await self._require_borrower(borrower_id)
        if book_id is not None:
            await self._require_book(book_id)

        if borrower_id is not None:
            records = await self.store.find_by_borrower_id(borrower_id)
        elif book_id is not None:
            records = await self.store.find_by_book_id(book_id)
        elif overdue_only:
            records = await self.store.find_overdue(now)
        elif active_only:
            records = await self.store.find_all_open()
        else:
            records = await self.store.find_all()

        if book_id is not None:
            records = [r for r in records if r.book_id == book_id]
        if active_only or overdue_only:
            records = [r for r in records if r.is_open]
        if overdue_only:
            records = [r for r in records if r.is_overdue(now)]
        return await self.enricher.enrich_all(records, now)

    async def list_available_books(self) -> list[BookSummary]:
        """List catalog books that have no open loan."""
        books = await self.catalog.list_books()
        on_loan = await self.store.find_open_book_ids()
        logger.debug("%d of %d books on loan", len(on_loan), len(books))
        return [book for book in books if book.id not in on_loan]

    async def list_due_soon(
        self, days: int = 7, now: Optional[datetime] = None
    ) -> list[LoanView]:
        """List open loans that fall due within ``days`` and are not yet overdue."""
        now = now or self.clock()
        records = await self.store.find_due_between(now, now + timedelta(days=days))
        return await self.enricher.enrich_all(records, now)

    async def get_stats(self, now: Optional[datetime] = None) -> LendingStats:
        """Get overall lending statistics."""
        now = now or self.clock()
        total = await self.store.count_all()
        active = await self.store.count_open()
        overdue = await self.store.count_overdue(now)
        return LendingStats(
            total_loans=total,
            active_loans=active,
            overdue_loans=overdue,
            returned_loans=total - active,
        )

    async def overdue_report(self, now: Optional[datetime] = None) -> OverdueReport:
        """Get report of overdue loans."""
        now = now or self.clock()
        loans = await self.list_overdue(now)
        return OverdueReport(
            loans=loans,
            total_overdue=len(loans),
            oldest_overdue_days=max((loan.days_overdue for loan in loans), default=0),
        )
