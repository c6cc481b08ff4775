"""
Shared fixtures: temporary SQLite files, fast bcrypt, hand-built requests.
"""

from contextlib import asynccontextmanager

import pytest

from boltauth.auth import CredentialStore, IdentityService, PasswordHasher, SessionManager
from boltauth.config import settings
from boltauth.db import SQLiteDatabase

from .helpers import TEST_SECRET


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager(TEST_SECRET)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "data" / "bolt.db")


@pytest.fixture
def open_store(db_path, hasher):
    """Async context manager factory yielding a CredentialStore on a fresh database."""

    @asynccontextmanager
    async def _open():
        db = SQLiteDatabase(db_path)
        await db.initialize()
        try:
            yield CredentialStore(db, hasher)
        finally:
            await db.close()

    return _open


@pytest.fixture
def open_identity(open_store, hasher, session_manager):
    """Async context manager factory yielding an IdentityService."""

    @asynccontextmanager
    async def _open():
        async with open_store() as store:
            yield IdentityService(store, hasher, session_manager)

    return _open


@pytest.fixture
def app_settings(monkeypatch, db_path):
    """Point the global settings at a temporary database."""
    monkeypatch.setattr(settings, "database_path", db_path)
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "session_secret", TEST_SECRET)
    monkeypatch.setattr(settings, "environment", "development")
    return settings


@pytest.fixture
def client(app_settings):
    """TestClient running the app lifespan; redirects are not followed."""
    from fastapi.testclient import TestClient
    from boltauth.main import app

    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
