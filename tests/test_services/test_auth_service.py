"""
Tests for AuthService: registration, login, tokens and logout.
"""
import os
import shutil
import tempfile
from unittest.mock import patch

import pytest

from teamtasks.auth.passwords import hash_password, verify_password
from teamtasks.database import TaskDatabase
from teamtasks.exceptions import AuthenticationError, DuplicateError, ForbiddenError
from teamtasks.services.auth_service import AuthService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    temp_dir = tempfile.mkdtemp()
    db = TaskDatabase(os.path.join(temp_dir, "test.db"))
    yield db
    shutil.rmtree(temp_dir)


@pytest.fixture(autouse=True)
def cheap_bcrypt():
    """Minimum bcrypt cost keeps the tests fast."""
    with patch("teamtasks.auth.passwords.BCRYPT_ROUNDS", 4):
        yield


@pytest.fixture
def auth_service(temp_db):
    return AuthService(temp_db, session_expires_hours=1)


class TestPasswords:
    """Tests for the bcrypt helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("secret1")
        assert hashed != "secret1"
        assert verify_password("secret1", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_verifies(self):
        assert verify_password("secret1", "not-a-bcrypt-hash") is False


class TestRegister:
    """Tests for register."""

    def test_register_returns_token(self, auth_service):
        # Execute
        result = auth_service.register("Alice", "Alice@Example.com", "secret1")

        # Verify
        assert result["user"]["email"] == "alice@example.com"
        assert result["user"]["role"] == "member"
        assert "password_hash" not in result["user"]
        assert result["token_type"] == "bearer"
        assert auth_service.authenticate(result["token"])["id"] == result["user"]["id"]

    def test_register_duplicate_email_case_insensitive(self, auth_service):
        auth_service.register("Alice", "alice@example.com", "secret1")
        with pytest.raises(DuplicateError):
            auth_service.register("Alice Again", "ALICE@example.com", "secret1")

    def test_register_admin_requires_admin(self, auth_service, temp_db):
        with pytest.raises(ForbiddenError):
            auth_service.register("Eve", "eve@example.com", "secret1", role="admin")
        assert temp_db.users.count() == 0


class TestLogin:
    """Tests for login and authenticate."""

    def test_login_success(self, auth_service):
        auth_service.register("Alice", "alice@example.com", "secret1")
        result = auth_service.login(" ALICE@example.com ", "secret1")
        assert result["user"]["name"] == "Alice"
        assert "password_hash" not in result["user"]

    def test_wrong_password_and_unknown_email_look_alike(self, auth_service):
        auth_service.register("Alice", "alice@example.com", "secret1")
        with pytest.raises(AuthenticationError) as wrong_password:
            auth_service.login("alice@example.com", "wrong-password")
        with pytest.raises(AuthenticationError) as unknown_email:
            auth_service.login("nobody@example.com", "secret1")
        assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"

    def test_authenticate_missing_token(self, auth_service):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(None)

    def test_authenticate_unknown_token(self, auth_service):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate("not-a-real-token")

    def test_expired_token(self, temp_db):
        service = AuthService(temp_db, session_expires_hours=-1)
        result = service.register("Alice", "alice@example.com", "secret1")
        with pytest.raises(AuthenticationError):
            service.authenticate(result["token"])


class TestLogout:
    """Tests for logout."""

    def test_logout_revokes_token(self, auth_service):
        result = auth_service.register("Alice", "alice@example.com", "secret1")
        assert auth_service.logout(result["token"]) is True
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(result["token"])

    def test_logout_unknown_token(self, auth_service):
        assert auth_service.logout("unknown") is False
