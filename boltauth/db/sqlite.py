"""
SQLite database implementation.
Simple and direct - no abstraction layers.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, List, Optional

import aiosqlite

from .models import User

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class StorageUnavailable(DatabaseError):
    """The database could not be opened or failed mid-operation."""
    pass


class UniqueViolation(DatabaseError):
    """A write was rejected by a unique index."""
    pass


class SQLiteDatabase:
    """SQLite database holding user records.

    The connection runs in autocommit mode, so every write is durable once
    the awaited call returns.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path, isolation_level=None)
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    @asynccontextmanager
    async def _guard(self, action: str):
        """Translate driver errors into DatabaseError subclasses."""
        try:
            yield
        except aiosqlite.IntegrityError as e:
            raise UniqueViolation(str(e)) from e
        except (aiosqlite.Error, OSError) as e:
            logger.error(f"Database error while {action}: {e}")
            raise StorageUnavailable(f"Database error while {action}") from e

    async def initialize(self) -> None:
        """Create database tables and indexes."""
        async with self._guard("initializing schema"):
            conn = await self._get_connection()

            await conn.executescript("""
                CREATE TABLE IF NOT EXISTS chats (
                    id TEXT PRIMARY KEY,
                    title TEXT,
                    description TEXT,
                    timestamp TEXT NOT NULL,
                    updated_at TEXT,
                    messages TEXT NOT NULL DEFAULT '[]'
                );

                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    email TEXT,
                    created_at TEXT NOT NULL,
                    last_login TEXT
                );

                -- Reserved for a server-tracked token session strategy
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    token TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                );

                CREATE UNIQUE INDEX IF NOT EXISTS "by-username" ON users(username);
                CREATE UNIQUE INDEX IF NOT EXISTS "by-token" ON sessions(token);
                CREATE INDEX IF NOT EXISTS "by-user" ON sessions(user_id);
            """)
        logger.info(f"Database ready at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    # ===== Helper Methods =====

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        return datetime.fromisoformat(value)

    def _row_to_user(self, row: aiosqlite.Row) -> User:
        """Convert a database row to a User model."""
        return User(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            email=row["email"],
            created_at=self._parse_datetime(row["created_at"]),
            last_login=self._parse_datetime(row["last_login"]),
        )

    # ===== User Operations =====

    async def get_users(self) -> List[User]:
        async with self._guard("listing users"):
            conn = await self._get_connection()
            cursor = await conn.execute("SELECT * FROM users")
            rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._guard("loading user"):
            conn = await self._get_connection()
            cursor = await conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        # Served by the "by-username" index
        async with self._guard("looking up username"):
            conn = await self._get_connection()
            cursor = await conn.execute("SELECT * FROM users WHERE username = ?", (username,))
            row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def create_user(self, user: User) -> User:
        async with self._guard("creating user"):
            conn = await self._get_connection()
            await conn.execute(
                """
                INSERT INTO users (id, username, password_hash, email, created_at, last_login)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id,
                    user.username,
                    user.password_hash,
                    user.email,
                    user.created_at.isoformat(),
                    user.last_login.isoformat() if user.last_login else None,
                )
            )
        return user

    async def update_user(self, user_id: str, **kwargs: Any) -> Optional[User]:
        """Write all given columns in one statement. Returns None if no such user."""
        if not kwargs:
            return await self.get_user(user_id)

        updates = []
        values = []

        field_mapping = {
            "username": "username",
            "password_hash": "password_hash",
            "email": "email",
            "last_login": "last_login",
        }

        for key, value in kwargs.items():
            if key not in field_mapping:
                raise ValueError(f"Unknown user field: {key}")
            updates.append(f"{field_mapping[key]} = ?")
            if isinstance(value, datetime):
                values.append(value.isoformat())
            else:
                values.append(value)

        values.append(user_id)

        async with self._guard("updating user"):
            conn = await self._get_connection()
            cursor = await conn.execute(f"UPDATE users SET {', '.join(updates)} WHERE id = ?", values)
            if cursor.rowcount == 0:
                return None

        return await self.get_user(user_id)

    async def delete_user(self, user_id: str) -> bool:
        async with self._guard("deleting user"):
            conn = await self._get_connection()
            cursor = await conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cursor.rowcount > 0
