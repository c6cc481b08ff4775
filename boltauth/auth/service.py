"""
Identity service: registration, login, profile update and logout.

Every rule is checked in a fixed order (shape, length, format, then
uniqueness or credentials) and only the first violation is reported, so
the same input always produces the same response.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Union

from fastapi import Request
from fastapi.responses import RedirectResponse

from ..db import DatabaseError, User, generate_uuid
from .password import PasswordHasher, PasswordHashError
from .session import SessionManager
from .users import CredentialStore, DuplicateUsername, UserNotFound

logger = logging.getLogger(__name__)


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"

LOGIN_FIELDS = ("username", "password", "form")
REGISTER_FIELDS = ("username", "password", "email", "form")
PROFILE_FIELDS = ("email", "currentPassword", "newPassword", "confirmPassword", "form")


class ValidationError(Exception):
    """User-correctable problem with one form field."""

    def __init__(self, field: str, message: str, extra: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field = field
        self.message = message
        self.extra = extra or {}


class InvalidCredentials(Exception):
    """Unknown username or wrong password. Deliberately does not say which."""
    pass


@dataclass
class FormErrors:
    """Field-keyed error set returned instead of a redirect."""
    errors: Dict[str, Optional[str]] = field(default_factory=dict)
    status_code: int = 400

    @classmethod
    def build(
        cls,
        fields: Sequence[str],
        messages: Dict[str, str],
        status_code: int = 400,
    ) -> "FormErrors":
        errors = {name: None for name in fields}
        errors.update(messages)
        return cls(errors=errors, status_code=status_code)


AuthOutcome = Union[RedirectResponse, FormErrors]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value


def safe_redirect_target(target: Optional[str], default: str = "/") -> str:
    """Only follow local absolute paths."""
    if not isinstance(target, str) or not target.startswith("/") or target.startswith("//"):
        return default
    if "\\" in target:
        return default
    return target


def validate_email(email: Optional[str]) -> None:
    if email is not None and not EMAIL_RE.match(email):
        raise ValidationError("email", "Invalid email address")


def validate_password_format(password: str, field: str = "password") -> None:
    # bcrypt rejects NUL bytes
    if "\x00" in password:
        raise ValidationError(field, "Password must not contain null characters")


def validate_credentials_shape(username: object, password: object) -> None:
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationError(
            "username",
            "Username is required",
            extra={"password": "Password is required"},
        )


def validate_credentials_length(username: str, password: str) -> None:
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(
            "username", f"Username must be at least {MIN_USERNAME_LENGTH} characters"
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


class IdentityService:
    """Business rules on top of the credential store, hasher and sessions."""

    def __init__(self, store: CredentialStore, hasher: PasswordHasher, sessions: SessionManager):
        self.store = store
        self.hasher = hasher
        self.sessions = sessions
        # Compared against when the username is unknown
        self._dummy_hash = hasher.hash(generate_uuid())

    # ===== Helpers =====

    @staticmethod
    def _rejected(fields: Sequence[str], error: ValidationError) -> FormErrors:
        messages = {error.field: error.message}
        messages.update(error.extra)
        return FormErrors.build(fields, messages)

    @staticmethod
    def _failed(fields: Sequence[str], message: str) -> FormErrors:
        # Internal error text never reaches the caller
        return FormErrors.build(fields, {"form": message}, status_code=500)

    async def current_user(self, request: Request) -> Optional[User]:
        """User behind the request's session, if any."""
        user_id = self.sessions.current_user_id(request)
        if user_id is None:
            return None
        try:
            return await self.store.get_by_id(user_id)
        except UserNotFound:
            return None

    # ===== Registration =====

    async def register(
        self,
        username: Optional[str],
        password: Optional[str],
        email: Optional[str] = None,
        redirect_to: Optional[str] = None,
    ) -> AuthOutcome:
        email = _blank_to_none(email)

        try:
            validate_credentials_shape(username, password)
            validate_credentials_length(username, password)
            validate_password_format(password)
            validate_email(email)
        except ValidationError as e:
            return self._rejected(REGISTER_FIELDS, e)

        try:
            # Reject a taken name before paying for the hash; the unique
            # index in the store still decides concurrent registrations
            if await self.store.username_exists(username):
                raise DuplicateUsername(username)
            password_hash = await self.hasher.hash_async(password)
            user = await self.store.create(username, password_hash, email)
        except DuplicateUsername:
            return FormErrors.build(REGISTER_FIELDS, {"username": "Username already exists"})
        except (DatabaseError, PasswordHashError):
            logger.exception(f"Registration failed for '{username}'")
            return self._failed(REGISTER_FIELDS, "Failed to create user")

        logger.info(f"Registered user '{user.username}'")
        return self.sessions.create_session(user.id, safe_redirect_target(redirect_to))

    # ===== Login =====

    async def _verify_login(self, username: str, password: str) -> User:
        try:
            user = await self.store.get_by_username(username)
        except UserNotFound:
            # Spend the same bcrypt time as a real mismatch
            await self.hasher.verify_async(password, self._dummy_hash)
            raise InvalidCredentials()

        if not await self.hasher.verify_async(password, user.password_hash):
            raise InvalidCredentials()

        return await self.store.record_login(user.id)

    async def login(
        self,
        username: Optional[str],
        password: Optional[str],
        redirect_to: Optional[str] = None,
    ) -> AuthOutcome:
        try:
            validate_credentials_shape(username, password)
            validate_credentials_length(username, password)
        except ValidationError as e:
            return self._rejected(LOGIN_FIELDS, e)

        try:
            user = await self._verify_login(username, password)
        except InvalidCredentials:
            logger.info(f"Rejected login for '{username}'")
            return FormErrors.build(LOGIN_FIELDS, {"form": INVALID_CREDENTIALS_MESSAGE})
        except (DatabaseError, PasswordHashError):
            logger.exception("Login failed")
            return self._failed(LOGIN_FIELDS, "Something went wrong. Please try again.")

        logger.info(f"User '{user.username}' logged in")
        return self.sessions.create_session(user.id, safe_redirect_target(redirect_to))

    # ===== Profile =====

    async def update_profile(
        self,
        request: Request,
        email: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
        confirm_password: Optional[str] = None,
    ) -> AuthOutcome:
        """
        Apply an email and/or password change for the session's user.

        Raises LoginRequired when there is no session. Either every
        accepted field is written or nothing is.
        """
        user_id = self.sessions.require_user_id(request)

        email = _blank_to_none(email)
        current_password = _blank_to_none(current_password)
        new_password = _blank_to_none(new_password)
        confirm_password = _blank_to_none(confirm_password)
        changing_password = any(
            p is not None for p in (current_password, new_password, confirm_password)
        )

        try:
            if changing_password:
                if current_password is None:
                    raise ValidationError("currentPassword", "Current password is required")
                if new_password is None:
                    raise ValidationError("newPassword", "New password is required")
                if confirm_password is None:
                    raise ValidationError("confirmPassword", "Please confirm your new password")
                if len(new_password) < MIN_PASSWORD_LENGTH:
                    raise ValidationError(
                        "newPassword",
                        f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                    )
            validate_email(email)
            if changing_password:
                validate_password_format(new_password, "newPassword")
                if new_password != confirm_password:
                    raise ValidationError("confirmPassword", "Passwords do not match")
        except ValidationError as e:
            return self._rejected(PROFILE_FIELDS, e)

        try:
            user = await self.store.get_by_id(user_id)
        except UserNotFound:
            return RedirectResponse(url="/logout", status_code=303)
        except DatabaseError:
            logger.exception("Profile lookup failed")
            return self._failed(PROFILE_FIELDS, "Failed to update profile")

        updates = {}
        if email is not None:
            updates["email"] = email

        try:
            if changing_password:
                if not await self.hasher.verify_async(current_password, user.password_hash):
                    return FormErrors.build(
                        PROFILE_FIELDS, {"currentPassword": "Current password is incorrect"}
                    )
                updates["password"] = new_password

            if updates:
                await self.store.update(user_id, **updates)
        except UserNotFound:
            return RedirectResponse(url="/logout", status_code=303)
        except (DatabaseError, PasswordHashError):
            logger.exception("Profile update failed")
            return self._failed(PROFILE_FIELDS, "Failed to update profile")

        if updates:
            logger.info(f"Updated profile of '{user.username}': {', '.join(sorted(updates))}")
        return RedirectResponse(url="/profile", status_code=303)

    # ===== Logout =====

    def logout(self, request: Optional[Request] = None) -> RedirectResponse:
        user_id = self.sessions.current_user_id(request) if request is not None else None
        if user_id:
            logger.info(f"User {user_id} logged out")
        return self.sessions.destroy_session(request)
