"""
Authentication module.
"""

from boltauth.auth.password import PasswordHasher, PasswordHashError, hash_password, verify_password
from boltauth.auth.session import (
    SessionManager,
    SessionData,
    SessionInvalid,
    LoginRequired,
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE,
)
from boltauth.auth.users import CredentialStore, DuplicateUsername, UserNotFound, UserStoreError
from boltauth.auth.service import (
    IdentityService,
    FormErrors,
    ValidationError,
    InvalidCredentials,
    safe_redirect_target,
)

__all__ = [
    "hash_password",
    "verify_password",
    "PasswordHasher",
    "PasswordHashError",
    "SessionManager",
    "SessionData",
    "SessionInvalid",
    "LoginRequired",
    "SESSION_COOKIE_NAME",
    "SESSION_MAX_AGE",
    "CredentialStore",
    "DuplicateUsername",
    "UserNotFound",
    "UserStoreError",
    "IdentityService",
    "FormErrors",
    "ValidationError",
    "InvalidCredentials",
    "safe_redirect_target",
]
