"""Database module: engine, sessions and shared ORM base."""

from .database import Database, get_db, reset_db
from .models import Base, UTCDateTime, generate_uuid, utcnow

__all__ = [
    "Base",
    "UTCDateTime",
    "generate_uuid",
    "utcnow",
    "Database",
    "get_db",
    "reset_db",
]
