"""
Test helpers for building requests and reading cookies.
"""

from http.cookies import SimpleCookie
from typing import Dict, Optional

from starlette.requests import Request

TEST_SECRET = "test-secret-not-for-production"
COOKIE_NAME = "bolt_session"


def make_request(path: str = "/", cookies: Optional[Dict[str, str]] = None) -> Request:
    """Build a bare Starlette request carrying the given cookies."""
    headers = []
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "query_string": b"",
        "headers": headers,
    }
    return Request(scope)


def cookie_from(response, name: str = COOKIE_NAME) -> Optional[str]:
    """Value a response sets for the session cookie, if any."""
    header = response.headers.get("set-cookie")
    if not header:
        return None
    parsed = SimpleCookie()
    parsed.load(header)
    morsel = parsed.get(name)
    return morsel.value if morsel else None
