"""Catalog and borrower lookups consumed by the lending core.

The lending core depends only on the ``CatalogLookup`` and ``BorrowerLookup``
protocols. ``SqlCatalog`` and ``SqlBorrowerDirectory`` are the default
implementations over the local ``books`` and ``borrowers`` tables.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from sqlalchemy import exists, select
from sqlalchemy.exc import SQLAlchemyError

from ..db.database import Database
from ..errors import StorageError
from .models import Book, Borrower
from .schemas import BookCreate, BookDetails, BookSummary, BorrowerCreate, BorrowerDetails

logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogLookup(Protocol):
    """Read-only access to book copies."""

    async def book_exists(self, book_id: str) -> bool: ...

    async def book_details(self, book_id: str) -> Optional[BookDetails]: ...

    async def list_books(self) -> list[BookSummary]: ...


@runtime_checkable
class BorrowerLookup(Protocol):
    """Read-only access to registered borrowers."""

    async def borrower_exists(self, borrower_id: str) -> bool: ...

    async def borrower_details(self, borrower_id: str) -> Optional[BorrowerDetails]: ...


class SqlCatalog:
    """Catalog lookup backed by the ``books`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def add_book(self, data: BookCreate) -> Book:
        """Add a book copy to the catalog.

        Args:
            data: Book creation data

        Returns:
            Created book
        """
        try:
            async with self.db.get_session() as session:
                book = Book(title=data.title, author=data.author, isbn=data.isbn)
                session.add(book)
                await session.commit()
                session.expunge(book)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to add book: {exc}") from exc
        logger.info("Added book %s (%s)", book.id, book.title)
        return book

    async def get_book(self, book_id: str) -> Optional[Book]:
        """Get a book by ID."""
        try:
            async with self.db.get_session() as session:
                book = await session.get(Book, book_id)
                if book:
                    session.expunge(book)
                return book
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load book {book_id}: {exc}") from exc

    async def book_exists(self, book_id: str) -> bool:
        try:
            async with self.db.get_session() as session:
                stmt = select(exists().where(Book.id == book_id))
                return bool((await session.execute(stmt)).scalar())
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to check book {book_id}: {exc}") from exc

    async def book_details(self, book_id: str) -> Optional[BookDetails]:
        book = await self.get_book(book_id)
        if book is None:
            return None
        return BookDetails.model_validate(book)

    async def list_books(self) -> list[BookSummary]:
        """List every book in the catalog, by title."""
        try:
            async with self.db.get_session() as session:
                result = await session.execute(select(Book).order_by(Book.title))
                books = result.scalars().all()
                return [BookSummary.model_validate(book) for book in books]
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to list books: {exc}") from exc


class SqlBorrowerDirectory:
    """Borrower lookup backed by the ``borrowers`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def add_borrower(self, data: BorrowerCreate) -> Borrower:
        """Register a borrower.

        Args:
            data: Borrower creation data

        Returns:
            Created borrower
        """
        try:
            async with self.db.get_session() as session:
                borrower = Borrower(name=data.name, email=data.email)
                session.add(borrower)
                await session.commit()
                session.expunge(borrower)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to add borrower: {exc}") from exc
        logger.info("Added borrower %s (%s)", borrower.id, borrower.name)
        return borrower

    async def get_borrower(self, borrower_id: str) -> Optional[Borrower]:
        """Get a borrower by ID."""
        try:
            async with self.db.get_session() as session:
                borrower = await session.get(Borrower, borrower_id)
                if borrower:
                    session.expunge(borrower)
                return borrower
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load borrower {borrower_id}: {exc}") from exc

    async def borrower_exists(self, borrower_id: str) -> bool:
        try:
            async with self.db.get_session() as session:
                stmt = select(exists().where(Borrower.id == borrower_id))
                return bool((await session.execute(stmt)).scalar())
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to check borrower {borrower_id}: {exc}") from exc

    async def borrower_details(self, borrower_id: str) -> Optional[BorrowerDetails]:
        borrower = await self.get_borrower(borrower_id)
        if borrower is None:
            return None
        return BorrowerDetails.model_validate(borrower)
