"""Wiring of the lending core behind a single object."""

from datetime import datetime
from typing import Callable, Optional

from .db.database import Database
from .db.models import utcnow
from .directory.lookups import BorrowerLookup, CatalogLookup, SqlBorrowerDirectory, SqlCatalog
from .lending.enrichment import LoanEnricher
from .lending.manager import LoanManager
from .lending.queries import LoanQueries
from .lending.store import LoanRecordStore


class LendingService:
    """Database, lookups, lifecycle manager and queries wired together.

    The lookups default to the SQL-backed catalog and borrower directory on
    the same database; pass other implementations to consume remote ones.
    """

    def __init__(
        self,
        db: Database,
        catalog: Optional[CatalogLookup] = None,
        borrowers: Optional[BorrowerLookup] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.catalog = catalog or SqlCatalog(db)
        self.borrowers = borrowers or SqlBorrowerDirectory(db)
        self.store = LoanRecordStore(db)
        self.enricher = LoanEnricher(self.catalog, self.borrowers, clock)
        self.manager = LoanManager(
            self.store, self.catalog, self.borrowers, self.enricher, clock
        )
        self.queries = LoanQueries(
            self.store, self.catalog, self.borrowers, self.enricher, clock
        )

    async def init(self) -> None:
        """Create tables if they do not exist."""
        await self.db.create_tables()

    async def close(self) -> None:
        await self.db.dispose()
