"""
End-to-end tests through the FastAPI routes.
"""

import asyncio
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import FastAPI

from boltauth.config import DEFAULT_SESSION_SECRET, Settings
from boltauth.db import StorageUnavailable
from boltauth.dependencies import close_dependencies, init_dependencies

from .helpers import COOKIE_NAME


def current_user(client):
    return client.get("/").json()["user"]


class TestAuthFlow:
    """Register, log out and log back in."""

    def test_register_logout_login(self, client):
        response = client.post("/register", data={"username": "alice", "password": "secret1"})
        assert response.status_code == 303
        assert response.headers["location"] == "/"
        assert client.cookies.get(COOKIE_NAME)

        registered = current_user(client)
        assert registered["username"] == "alice"
        assert "password_hash" not in registered

        response = client.get("/logout")
        assert response.status_code == 303
        assert response.headers["location"] == "/"
        assert not client.cookies.get(COOKIE_NAME)
        assert current_user(client) is None

        response = client.post("/login", data={"username": "alice", "password": "wrong"})
        assert response.status_code == 400
        assert "set-cookie" not in response.headers
        assert current_user(client) is None

        response = client.post("/login", data={"username": "alice", "password": "secret1"})
        assert response.status_code == 303
        logged_in = current_user(client)
        assert logged_in["id"] == registered["id"]
        assert logged_in["last_login"] != registered["last_login"]

    def test_login_redirects_to_requested_page(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})
        client.post("/logout")

        response = client.post(
            "/login",
            data={"username": "alice", "password": "secret1", "redirectTo": "/profile"},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/profile"

    def test_login_errors_are_rendered_inline(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})
        client.post("/logout")

        wrong_password = client.post("/login", data={"username": "alice", "password": "wrongpw"})
        unknown_user = client.post("/login", data={"username": "mallory", "password": "wrongpw"})

        assert wrong_password.status_code == unknown_user.status_code == 400
        assert "Invalid username or password" in wrong_password.text
        assert "Invalid username or password" in unknown_user.text

    def test_register_validation_errors(self, client):
        response = client.post("/register", data={"username": "ab", "password": "secret1"})
        assert response.status_code == 400
        assert "Username must be at least 3 characters" in response.text
        assert not client.cookies.get(COOKIE_NAME)

        client.post("/register", data={"username": "alice", "password": "secret1"})
        client.post("/logout")
        response = client.post("/register", data={"username": "alice", "password": "secret2"})
        assert response.status_code == 400
        assert "Username already exists" in response.text

    def test_auth_pages_redirect_signed_in_users(self, client):
        assert client.get("/login").status_code == 200
        assert client.get("/register").status_code == 200

        client.post("/register", data={"username": "alice", "password": "secret1"})

        for path in ("/login", "/register"):
            response = client.get(path)
            assert response.status_code == 303
            assert response.headers["location"] == "/"

    def test_forged_cookie_is_anonymous(self, client):
        client.cookies.set(COOKIE_NAME, "forged.value.signature")
        assert current_user(client) is None
        assert client.get("/profile").status_code == 303


class TestProfile:
    """Profile page and updates."""

    def test_profile_requires_login(self, client):
        response = client.get("/profile")
        location = urlparse(response.headers["location"])

        assert response.status_code == 303
        assert location.path == "/login"
        assert parse_qs(location.query) == {"redirectTo": ["/profile"]}

    def test_profile_update_requires_login(self, client):
        response = client.post("/profile", data={"email": "a@example.com"})
        assert response.status_code == 303
        assert urlparse(response.headers["location"]).path == "/login"

    def test_profile_page_shows_user(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})
        response = client.get("/profile")
        assert response.status_code == 200
        assert "alice" in response.text

    def test_update_email_and_password(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})

        response = client.post(
            "/profile",
            data={
                "email": "alice@example.com",
                "currentPassword": "secret1",
                "newPassword": "newsecret",
                "confirmPassword": "newsecret",
            },
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/profile"
        assert current_user(client)["email"] == "alice@example.com"

        client.post("/logout")
        assert client.post("/login", data={"username": "alice", "password": "secret1"}).status_code == 400
        assert client.post("/login", data={"username": "alice", "password": "newsecret"}).status_code == 303

    def test_new_password_without_current_is_rejected(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})

        response = client.post(
            "/profile", data={"newPassword": "newsecret", "confirmPassword": "newsecret"}
        )
        assert response.status_code == 400
        assert "Current password is required" in response.text

        client.post("/logout")
        assert client.post("/login", data={"username": "alice", "password": "secret1"}).status_code == 303

    def test_rejected_form_keeps_submitted_email(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})

        response = client.post("/profile", data={"email": "not-an-email"})
        assert response.status_code == 400
        assert "Invalid email address" in response.text
        assert 'value="not-an-email"' in response.text

    def test_deleted_account_is_sent_to_logout(self, client):
        client.post("/register", data={"username": "alice", "password": "secret1"})
        user_id = current_user(client)["id"]

        client.portal.call(client.app.state.identity.store.delete, user_id)

        response = client.get("/profile")
        assert response.status_code == 303
        assert response.headers["location"] == "/logout"

    def test_update_storage_failure_is_generic(self, client, monkeypatch):
        client.post("/register", data={"username": "alice", "password": "secret1"})

        async def broken(user_id, **kwargs):
            raise StorageUnavailable("disk /secret")

        monkeypatch.setattr(client.app.state.db, "update_user", broken)

        response = client.post("/profile", data={"email": "a@example.com"})
        assert response.status_code == 500
        assert "Failed to update profile" in response.text
        assert "disk" not in response.text


class TestAppLifecycle:
    """Startup configuration checks and health endpoint."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_unhandled_database_error_is_generic_500(self, client, monkeypatch):
        client.post("/register", data={"username": "alice", "password": "secret1"})

        async def broken(user_id):
            raise StorageUnavailable("disk /secret")

        monkeypatch.setattr(client.app.state.db, "get_user", broken)

        for path in ("/", "/profile"):
            response = client.get(path)
            assert response.status_code == 500
            assert response.text == "Something went wrong. Please try again."

    def test_default_secret_rejected_in_production(self, tmp_path):
        config = Settings(
            environment="production",
            session_secret=DEFAULT_SESSION_SECRET,
            database_path=str(tmp_path / "bolt.db"),
            _env_file=None,
        )

        with pytest.raises(RuntimeError):
            asyncio.run(init_dependencies(FastAPI(), config))

    def test_production_sets_secure_cookies(self, tmp_path):
        config = Settings(
            environment="production",
            session_secret="a-real-secret",
            database_path=str(tmp_path / "bolt.db"),
            bcrypt_rounds=4,
            _env_file=None,
        )
        app = FastAPI()

        async def scenario():
            await init_dependencies(app, config)
            try:
                return app.state.session_manager.create_session("user-1")
            finally:
                await close_dependencies(app)

        response = asyncio.run(scenario())
        assert "secure" in response.headers["set-cookie"].lower()
