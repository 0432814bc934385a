"""Async database engine and session management.

SQLite through aiosqlite is the default backend; any SQLAlchemy async URL
(for example ``postgresql+asyncpg://...``) can be used instead.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .models import Base

logger = logging.getLogger(__name__)

# Seconds a SQLite connection waits for a competing writer before failing
SQLITE_BUSY_TIMEOUT = 30.0


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """Turn on foreign key enforcement, which SQLite leaves off per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Database connection and session manager."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        url: Optional[str] = None,
        echo: bool = False,
    ):
        """Initialize database connection.

        Args:
            db_path: Path to a SQLite database file, or ":memory:".
            url: Full SQLAlchemy async URL. Takes precedence over db_path.
            echo: Log emitted SQL.
        """
        self.db_path: Optional[Path] = None
        self._is_memory = False

        if url is None:
            if db_path is None:
                config = get_config()
                url = config.database_url
                echo = echo or config.echo_sql
                if not config.db_url:
                    self.db_path = config.db_path
            elif str(db_path) == ":memory:":
                self._is_memory = True
                url = "sqlite+aiosqlite:///:memory:"
            else:
                self.db_path = Path(db_path)
                url = f"sqlite+aiosqlite:///{self.db_path}"

        if self.db_path is not None:
            self._ensure_directory()

        self.url = url

        # For in-memory databases, use StaticPool to reuse the same connection
        # so all sessions share one database
        if self._is_memory:
            self.engine = create_async_engine(url, echo=echo, poolclass=StaticPool)
        elif url.startswith("sqlite"):
            self.engine = create_async_engine(
                url,
                echo=echo,
                connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
            )
        else:
            self.engine = create_async_engine(url, echo=echo, pool_pre_ping=True)

        if url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = async_sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    async def create_tables(self) -> None:
        """Create all database tables."""
        # Import models to register them with Base
        from ..directory.models import Book, Borrower  # noqa: F401
        from ..lending.models import LoanRecord  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("Tables ensured on %s", self.engine.url.render_as_string())

    async def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Get a database session context manager.

        Commits when the block exits normally and rolls back on any error,
        cancellation included.
        """
        session = self.SessionLocal()
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance.

    Tables are not created here; await ``Database.create_tables`` once the
    event loop is running.
    """
    global _db
    if _db is None:
        _db = Database(db_path)
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
