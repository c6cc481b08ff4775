"""
FastAPI dependency injection.

The database handle and the auth components are created once at startup,
kept on ``app.state`` and closed on shutdown.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request

from .config import Settings, settings
from .db import SQLiteDatabase
from .auth import CredentialStore, IdentityService, PasswordHasher, SessionManager

logger = logging.getLogger(__name__)


def check_session_secret(config: Settings) -> None:
    """Refuse the development secret in production, warn about it elsewhere."""
    if not config.uses_default_secret:
        return
    if config.is_production:
        raise RuntimeError("SESSION_SECRET must be set in production")
    logger.warning("Using the default SESSION_SECRET; sessions can be forged. Set SESSION_SECRET.")


async def init_dependencies(app: FastAPI, config: Optional[Settings] = None) -> None:
    """Create the owned handles. Called on app startup."""
    config = config or settings
    check_session_secret(config)

    db = SQLiteDatabase(config.database_path)
    await db.initialize()

    hasher = PasswordHasher(config.bcrypt_rounds)
    session_manager = SessionManager(
        config.session_secret,
        secure=config.is_production,
        max_age=config.session_max_age,
        cookie_name=config.session_cookie_name,
    )

    app.state.db = db
    app.state.session_manager = session_manager
    app.state.identity = IdentityService(CredentialStore(db, hasher), hasher, session_manager)


async def close_dependencies(app: FastAPI) -> None:
    """Close the database handle. Called on app shutdown."""
    db: Optional[SQLiteDatabase] = getattr(app.state, "db", None)
    if db:
        await db.close()
        app.state.db = None


def get_session_manager(request: Request) -> SessionManager:
    """Get the session manager instance."""
    session_manager = getattr(request.app.state, "session_manager", None)
    if session_manager is None:
        raise RuntimeError("Session manager not initialized")
    return session_manager


def get_identity(request: Request) -> IdentityService:
    """Get the identity service instance."""
    identity = getattr(request.app.state, "identity", None)
    if identity is None:
        raise RuntimeError("Identity service not initialized")
    return identity


async def require_user_id(request: Request) -> str:
    """
    Dependency that requires authentication.
    Redirects to login, remembering the requested path, if not authenticated.
    """
    return get_session_manager(request).require_user_id(request)


def check_auth(request: Request) -> bool:
    """Check if user is authenticated (without raising exception)."""
    return get_session_manager(request).current_user_id(request) is not None
