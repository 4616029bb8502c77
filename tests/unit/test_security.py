"""Unit tests for password hashing and admin tokens."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from filevault.core.security import (
    AdminTokenManager,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret-key-0123456789abcdef"


class TestPasswordHashing:
    def test_hash_is_salted_and_not_plaintext(self):
        first = hash_password("secret1", rounds=4)
        second = hash_password("secret1", rounds=4)

        assert first != "secret1"
        assert first.startswith("$2")
        assert first != second

    def test_verify_matching_password(self):
        digest = hash_password("secret1", rounds=4)
        assert verify_password("secret1", digest) is True

    def test_verify_wrong_password(self):
        digest = hash_password("secret1", rounds=4)
        assert verify_password("wrong", digest) is False

    def test_verify_empty_input(self):
        digest = hash_password("secret1", rounds=4)
        assert verify_password("", digest) is False
        assert verify_password("secret1", "") is False

    def test_verify_corrupted_digest(self):
        assert verify_password("secret1", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_truncated_consistently(self):
        long_password = "x" * 100
        digest = hash_password(long_password, rounds=4)

        assert verify_password(long_password, digest) is True
        # bcrypt only sees the first 72 bytes
        assert verify_password("x" * 72, digest) is True

    def test_unicode_password(self):
        digest = hash_password("pässwörd-🔐", rounds=4)
        assert verify_password("pässwörd-🔐", digest) is True
        assert verify_password("passwort", digest) is False


class TestAdminCredentials:
    def test_matching_pair(self):
        assert AdminTokenManager.check_credentials("admin", "pw", "admin", "pw") is True

    @pytest.mark.parametrize(
        ("username", "password"),
        [("admin", "nope"), ("root", "pw"), ("", ""), ("ADMIN", "pw")],
    )
    def test_mismatching_pair(self, username, password):
        assert AdminTokenManager.check_credentials(username, password, "admin", "pw") is False

    def test_unconfigured_credentials_never_match(self):
        assert AdminTokenManager.check_credentials("", "", "", "") is False


class TestAdminTokenManager:
    """Tokens are signed, expiring and scoped to the admin console."""

    @pytest.fixture
    def manager(self):
        return AdminTokenManager(secret_key=SECRET, algorithm="HS256", expires_in=timedelta(minutes=5))

    def test_issue_and_verify(self, manager):
        token, expires_at = manager.issue_token()

        payload = manager.verify_token(token)
        assert payload is not None
        assert payload["sub"] == "admin"
        assert payload["scope"] == "admin"
        assert expires_at > datetime.now(UTC)

    def test_tokens_are_unique(self, manager):
        first, _ = manager.issue_token()
        second, _ = manager.issue_token()
        assert first != second

    def test_expired_token_rejected(self, manager):
        token, _ = manager.issue_token(now=datetime.now(UTC) - timedelta(minutes=10))
        assert manager.verify_token(token) is None

    def test_token_signed_with_other_key_rejected(self, manager):
        other = AdminTokenManager(secret_key="another-secret-key-0123456789abcdef", algorithm="HS256")
        token, _ = other.issue_token()
        assert manager.verify_token(token) is None

    def test_tampered_token_rejected(self, manager):
        token, _ = manager.issue_token()
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        assert manager.verify_token(tampered) is None

    def test_garbage_rejected(self, manager):
        assert manager.verify_token("not-a-token") is None

    def test_wrong_scope_rejected(self, manager):
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "admin", "scope": "user", "iat": now, "exp": now + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256",
        )
        assert manager.verify_token(token) is None

    def test_missing_expiry_rejected(self, manager):
        token = jwt.encode(
            {"sub": "admin", "scope": "admin", "iat": datetime.now(UTC)}, SECRET, algorithm="HS256"
        )
        assert manager.verify_token(token) is None
