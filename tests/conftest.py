"""Pytest configuration and shared fixtures.

This module provides fixtures for testing loanledger, including a temporary
database, the lending components wired to it, and sample books/borrowers.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Generator, Optional

import pytest

from loanledger.config import reset_config
from loanledger.db.database import Database, reset_db
from loanledger.directory.lookups import SqlBorrowerDirectory, SqlCatalog
from loanledger.directory.models import Book, Borrower
from loanledger.directory.schemas import (
    BookCreate,
    BookDetails,
    BookSummary,
    BorrowerCreate,
    BorrowerDetails,
)
from loanledger.lending.enrichment import LoanEnricher
from loanledger.lending.manager import LoanManager
from loanledger.lending.queries import LoanQueries
from loanledger.lending.store import LoanRecordStore


# ============================================================================
# Clock
# ============================================================================

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for pinning lifecycle timestamps."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
async def db(temp_db_path: Path) -> AsyncIterator[Database]:
    """Create a test database instance backed by a temporary file."""
    reset_db()
    reset_config()

    database = Database(str(temp_db_path))
    await database.create_tables()
    yield database

    await database.dispose()
    reset_db()


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest.fixture
def catalog(db: Database) -> SqlCatalog:
    return SqlCatalog(db)


@pytest.fixture
def borrowers(db: Database) -> SqlBorrowerDirectory:
    return SqlBorrowerDirectory(db)


@pytest.fixture
def store(db: Database) -> LoanRecordStore:
    return LoanRecordStore(db)


@pytest.fixture
def manager(store, catalog, borrowers, clock) -> LoanManager:
    """Create a LoanManager with a pinned clock."""
    return LoanManager(store, catalog, borrowers, clock=clock)


@pytest.fixture
def queries(store, catalog, borrowers, clock) -> LoanQueries:
    """Create LoanQueries sharing the pinned clock."""
    return LoanQueries(store, catalog, borrowers, clock=clock)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
async def sample_book(catalog: SqlCatalog) -> Book:
    """Create a sample book in the catalog."""
    return await catalog.add_book(
        BookCreate(title="The Great Gatsby", author="F. Scott Fitzgerald", isbn="9780743273565")
    )


@pytest.fixture
async def sample_books(catalog: SqlCatalog) -> list[Book]:
    """Create multiple sample books."""
    return [
        await catalog.add_book(
            BookCreate(title=f"Test Book {i + 1}", author=f"Author {i + 1}", isbn=f"97800000000{i}")
        )
        for i in range(3)
    ]


@pytest.fixture
async def alice(borrowers: SqlBorrowerDirectory) -> Borrower:
    """Create the first sample borrower."""
    return await borrowers.add_borrower(BorrowerCreate(name="Alice Smith", email="alice@example.com"))


@pytest.fixture
async def bob(borrowers: SqlBorrowerDirectory) -> Borrower:
    """Create the second sample borrower."""
    return await borrowers.add_borrower(BorrowerCreate(name="Bob Jones", email="bob@example.com"))


# ============================================================================
# Fake Lookups
# ============================================================================


class StaticCatalog:
    """In-memory catalog lookup."""

    def __init__(self, books: Optional[dict[str, BookDetails]] = None, fail: bool = False):
        self.books = books or {}
        self.fail = fail

    async def book_exists(self, book_id: str) -> bool:
        return book_id in self.books

    async def book_details(self, book_id: str) -> Optional[BookDetails]:
        if self.fail:
            raise ConnectionError("catalog unreachable")
        return self.books.get(book_id)

    async def list_books(self) -> list[BookSummary]:
        return [
            BookSummary(id=book_id, **details.model_dump())
            for book_id, details in self.books.items()
        ]


class StaticBorrowers:
    """In-memory borrower lookup."""

    def __init__(self, people: Optional[dict[str, BorrowerDetails]] = None, fail: bool = False):
        self.people = people or {}
        self.fail = fail

    async def borrower_exists(self, borrower_id: str) -> bool:
        return borrower_id in self.people

    async def borrower_details(self, borrower_id: str) -> Optional[BorrowerDetails]:
        if self.fail:
            raise ConnectionError("directory unreachable")
        return self.people.get(borrower_id)


@pytest.fixture
def enricher_factory(clock):
    """Build a LoanEnricher over the given lookups."""

    def _make(catalog, borrowers) -> LoanEnricher:
        return LoanEnricher(catalog, borrowers, clock)

    return _make


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_env(temp_db_path: Path) -> Generator[Path, None, None]:
    """Point the CLI at a temporary database."""
    reset_db()
    reset_config()
    os.environ["LOANLEDGER_DB_PATH"] = str(temp_db_path)
    yield temp_db_path
    reset_db()
    reset_config()
    del os.environ["LOANLEDGER_DB_PATH"]
