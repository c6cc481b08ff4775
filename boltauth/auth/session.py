"""
Cookie-based session management.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse
from itsdangerous import BadData, URLSafeTimedSerializer

logger = logging.getLogger(__name__)


# Session duration: 30 days, counted from issuance
SESSION_MAX_AGE = 30 * 24 * 60 * 60  # seconds
SESSION_COOKIE_NAME = "bolt_session"
LOGIN_PATH = "/login"


class SessionInvalid(Exception):
    """Cookie is missing, corrupt, expired or carries a bad signature."""
    pass


class LoginRequired(HTTPException):
    """Interrupts a request that needs a session with a redirect to login."""

    def __init__(self, location: str):
        super().__init__(status_code=303, headers={"Location": location})
        self.location = location


@dataclass(frozen=True)
class SessionData:
    """Decoded session handle. Empty when the request carries no valid session."""
    user_id: Optional[str] = None
    issued_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.user_id is None


EMPTY_SESSION = SessionData()


class SessionManager:
    """Manages signed cookie-based sessions."""

    def __init__(
        self,
        secret_key: str,
        secure: bool = False,
        max_age: int = SESSION_MAX_AGE,
        cookie_name: str = SESSION_COOKIE_NAME,
    ):
        """
        Initialize session manager.

        Args:
            secret_key: Secret key for signing cookies
            secure: Mark cookies Secure (HTTPS only)
            max_age: Session lifetime in seconds
            cookie_name: Name of the session cookie
        """
        self._serializer = URLSafeTimedSerializer(secret_key, salt="bolt.session")
        self.secure = secure
        self.max_age = max_age
        self.cookie_name = cookie_name

    def _decode(self, token: Optional[str]) -> SessionData:
        if not token:
            raise SessionInvalid("no session cookie")

        try:
            # Verify signature and check expiration
            payload = self._serializer.loads(token, max_age=self.max_age)
        except BadData as e:
            raise SessionInvalid(str(e)) from e

        user_id = payload.get("user_id") if isinstance(payload, dict) else None
        if not isinstance(user_id, str) or not user_id:
            raise SessionInvalid("session payload has no user id")

        issued_at = None
        if isinstance(payload.get("created_at"), str):
            try:
                issued_at = datetime.fromisoformat(payload["created_at"])
            except ValueError:
                pass
        return SessionData(user_id=user_id, issued_at=issued_at)

    def read_session(self, request: Request) -> SessionData:
        """
        Get session data from request cookie.

        Args:
            request: FastAPI request object

        Returns:
            Session handle, empty if the cookie is absent, invalid or expired
        """
        try:
            return self._decode(request.cookies.get(self.cookie_name))
        except SessionInvalid as e:
            if request.cookies.get(self.cookie_name):
                logger.debug(f"Ignoring session cookie: {e}")
            return EMPTY_SESSION

    @staticmethod
    def get_user_id(session: SessionData) -> Optional[str]:
        return session.user_id

    def current_user_id(self, request: Request) -> Optional[str]:
        """Shortcut for get_user_id(read_session(request))."""
        return self.get_user_id(self.read_session(request))

    def require_user_id(self, request: Request, redirect_to: Optional[str] = None) -> str:
        """
        Return the session's user id or raise LoginRequired.

        Args:
            request: FastAPI request object
            redirect_to: Path to come back to after login, defaults to the
                requested path
        """
        user_id = self.current_user_id(request)
        if user_id is None:
            target = redirect_to or request.url.path
            raise LoginRequired(f"{LOGIN_PATH}?{urlencode({'redirectTo': target})}")
        return user_id

    def create_session(self, user_id: str, redirect_to: str = "/") -> RedirectResponse:
        """
        Redirect with a freshly signed session cookie for user_id.

        Args:
            user_id: User identifier to store in session
            redirect_to: Where the browser goes next
        """
        session_data = {
            "user_id": user_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        # Sign and encode
        token = self._serializer.dumps(session_data)

        response = RedirectResponse(url=redirect_to, status_code=303)
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=self.max_age,
            path="/",
            httponly=True,  # Not accessible via JavaScript
            samesite="lax",  # CSRF protection
            secure=self.secure,
        )
        return response

    def destroy_session(self, request: Optional[Request] = None) -> RedirectResponse:
        """
        Redirect to the application root and clear the session cookie.

        Works whether or not the request carried a session.
        """
        if request is not None and not self.read_session(request).is_empty:
            logger.debug("Destroying active session")

        response = RedirectResponse(url="/", status_code=303)
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self.secure,
        )
        return response
