"""Join borrower and book details onto loan records at read time."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..db.models import utcnow
from ..directory.lookups import BorrowerLookup, CatalogLookup
from ..directory.schemas import BookDetails, BorrowerDetails
from .models import LoanRecord
from .schemas import LoanView

logger = logging.getLogger(__name__)


class LoanEnricher:
    """Builds ``LoanView`` objects from records.

    Lookup failures never fail the read: a missing or unreachable borrower or
    book leaves the corresponding fields at the "Unknown" placeholder.
    """

    def __init__(
        self,
        catalog: CatalogLookup,
        borrowers: BorrowerLookup,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.catalog = catalog
        self.borrowers = borrowers
        self.clock = clock

    async def _borrower(self, borrower_id: str) -> Optional[BorrowerDetails]:
        try:
            details = await self.borrowers.borrower_details(borrower_id)
        except Exception as exc:
            logger.warning("Borrower lookup failed for %s: %s", borrower_id, exc)
            return None
        if details is None:
            logger.warning("Borrower %s not found while enriching loan", borrower_id)
        return details

    async def _book(self, book_id: str) -> Optional[BookDetails]:
        try:
            details = await self.catalog.book_details(book_id)
        except Exception as exc:
            logger.warning("Book lookup failed for %s: %s", book_id, exc)
            return None
        if details is None:
            logger.warning("Book %s not found while enriching loan", book_id)
        return details

    async def enrich(self, record: LoanRecord, now: Optional[datetime] = None) -> LoanView:
        """Enrich a single record."""
        borrower, book = await asyncio.gather(
            self._borrower(record.borrower_id),
            self._book(record.book_id),
        )
        return LoanView.from_record(record, now or self.clock(), borrower=borrower, book=book)

    async def enrich_all(
        self, records: Iterable[LoanRecord], now: Optional[datetime] = None
    ) -> list[LoanView]:
        """Enrich records concurrently, keeping their order."""
        now = now or self.clock()
        return list(await asyncio.gather(*(self.enrich(r, now) for r in records)))
