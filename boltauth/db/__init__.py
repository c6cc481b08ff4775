"""
Database package - SQLite only.
"""

from .models import User, PublicUser, generate_uuid, utcnow
from .sqlite import SQLiteDatabase, DatabaseError, StorageUnavailable, UniqueViolation

__all__ = [
    "SQLiteDatabase",
    "DatabaseError",
    "StorageUnavailable",
    "UniqueViolation",
    "User",
    "PublicUser",
    "generate_uuid",
    "utcnow",
]
