"""
Password hashing with bcrypt.
"""

import asyncio

from passlib.context import CryptContext

from ..config import settings


class PasswordHashError(Exception):
    """The hashing backend rejected the input or is unavailable."""
    pass


class PasswordHasher:
    """Salted one-way hashing. The only place passwords are hashed or compared."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, plaintext: str) -> str:
        try:
            return self._context.hash(plaintext)
        except (ValueError, TypeError) as e:
            raise PasswordHashError(str(e)) from e

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Check a password; a malformed or empty hash never matches."""
        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            return False

    async def hash_async(self, plaintext: str) -> str:
        """Hash in a worker thread so the event loop keeps serving requests."""
        return await asyncio.to_thread(self.hash, plaintext)

    async def verify_async(self, plaintext: str, hashed: str) -> bool:
        return await asyncio.to_thread(self.verify, plaintext, hashed)


_default_hasher = PasswordHasher(settings.bcrypt_rounds)


def hash_password(password: str) -> str:
    """Hash a password with the configured cost."""
    return _default_hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return _default_hasher.verify(password, hashed)
