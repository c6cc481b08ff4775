"""
Pydantic models for database entities.
Only password hashes are persisted, never plaintext passwords.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field
import uuid


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class User(BaseModel):
    """A registered account."""
    id: str = Field(default_factory=generate_uuid)
    username: str
    password_hash: str  # bcrypt hash
    email: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_login: Optional[datetime] = None

    def public(self) -> "PublicUser":
        """Projection that is safe to render or serialize."""
        return PublicUser(
            id=self.id,
            username=self.username,
            email=self.email,
            created_at=self.created_at,
            last_login=self.last_login,
        )


class PublicUser(BaseModel):
    """User fields that may leave the server."""
    id: str
    username: str
    email: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None
