"""
Credential store: user records keyed by id with a unique username index.
"""

import logging
from typing import Any, List, Optional

from ..db import SQLiteDatabase, User, UniqueViolation, utcnow
from .password import PasswordHasher

logger = logging.getLogger(__name__)


class UserStoreError(Exception):
    """Base exception for credential store errors."""
    pass


class DuplicateUsername(UserStoreError):
    """Username is already taken."""

    def __init__(self, username: str):
        super().__init__(f"Username already exists: {username}")
        self.username = username


class UserNotFound(UserStoreError):
    """No user matches the given id or username."""
    pass


UPDATABLE_FIELDS = {"username", "password", "email", "last_login"}


class CredentialStore:
    """
    Keyed persistence of user records.

    Storage failures propagate as StorageUnavailable so callers can tell
    "nothing there" (UserNotFound) apart from "store is broken".
    """

    def __init__(self, db: SQLiteDatabase, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    async def create(self, username: str, password_hash: str, email: Optional[str] = None) -> User:
        """Persist a new user. Raises DuplicateUsername if the name is taken."""
        now = utcnow()
        user = User(
            username=username,
            password_hash=password_hash,
            email=email,
            created_at=now,
            last_login=now,
        )

        try:
            await self.db.create_user(user)
        except UniqueViolation as e:
            # The "by-username" index is the only uniqueness guard
            raise DuplicateUsername(username) from e

        logger.info(f"Created user '{username}' ({user.id})")
        return user

    async def username_exists(self, username: str) -> bool:
        return await self.db.get_user_by_username(username) is not None

    async def get_by_id(self, user_id: str) -> User:
        user = await self.db.get_user(user_id)
        if user is None:
            raise UserNotFound(f"User not found: {user_id}")
        return user

    async def get_by_username(self, username: str) -> User:
        user = await self.db.get_user_by_username(username)
        if user is None:
            raise UserNotFound(f"User not found: {username}")
        return user

    async def update(self, user_id: str, **fields: Any) -> User:
        """
        Merge fields into an existing record.

        A plaintext ``password`` is hashed before it is written; the id is
        never updatable.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {', '.join(sorted(unknown))}")

        columns = dict(fields)
        if "password" in columns:
            columns["password_hash"] = await self.hasher.hash_async(columns.pop("password"))

        try:
            user = await self.db.update_user(user_id, **columns)
        except UniqueViolation as e:
            raise DuplicateUsername(fields.get("username", "")) from e

        if user is None:
            raise UserNotFound(f"User not found: {user_id}")
        return user

    async def record_login(self, user_id: str) -> User:
        return await self.update(user_id, last_login=utcnow())

    async def delete(self, user_id: str) -> None:
        if not await self.db.delete_user(user_id):
            raise UserNotFound(f"User not found: {user_id}")
        logger.info(f"Deleted user {user_id}")

    async def list_all(self) -> List[User]:
        return await self.db.get_users()
