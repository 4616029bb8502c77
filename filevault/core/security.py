"""Security related functions.

Per-file passwords are hashed with bcrypt. Admin sessions are represented by
short-lived signed JWTs minted at login and verified statelessly on every
privileged request.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from jwt import InvalidTokenError

from filevault.core.config import settings

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72

ADMIN_SUBJECT = "admin"
ADMIN_SCOPE = "admin"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt digest for ``password``."""
    salt = bcrypt.gensalt(rounds=rounds or settings.password_hash_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored digest.

    A mismatch is a normal ``False`` result. A digest that bcrypt cannot parse
    also yields ``False`` so that a corrupted record never authorizes a download.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


class AdminTokenManager:
    """
    Issues and verifies admin bearer tokens.

    Login is checked against the single configured credential pair. A successful
    login returns a signed JWT carrying the issue time and expiry, so no
    server-side session state is kept and logout is a client-side discard.

    :ivar secret_key: Key used to sign tokens.
    :type secret_key: str
    :ivar algorithm: JWT signing algorithm.
    :type algorithm: str
    :ivar expires_in: Lifetime of an issued token.
    :type expires_in: timedelta
    """

    def __init__(
        self,
        secret_key: str | None = None,
        algorithm: str | None = None,
        expires_in: timedelta | None = None,
    ):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.expires_in = expires_in or timedelta(minutes=settings.admin_token_expire_minutes)

    @staticmethod
    def check_credentials(
        username: str,
        password: str,
        expected_username: str | None = None,
        expected_password: str | None = None,
    ) -> bool:
        """Compare a login pair with the configured one in constant time."""
        expected_username = expected_username if expected_username is not None else settings.admin_username
        expected_password = expected_password if expected_password is not None else settings.admin_password
        if not expected_username or not expected_password:
            return False
        # Evaluate both comparisons so timing does not reveal which one failed
        user_ok = secrets.compare_digest(username.encode("utf-8"), expected_username.encode("utf-8"))
        password_ok = secrets.compare_digest(
            password.encode("utf-8"), expected_password.encode("utf-8")
        )
        return user_ok and password_ok

    def issue_token(self, now: datetime | None = None) -> tuple[str, datetime]:
        """Mint a token; returns the encoded JWT and its expiry (UTC)."""
        issued_at = now or datetime.now(UTC)
        expires_at = issued_at + self.expires_in
        payload = {
            "sub": ADMIN_SUBJECT,
            "scope": ADMIN_SCOPE,
            "iat": issued_at,
            "exp": expires_at,
            "jti": secrets.token_hex(8),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expires_at

    def verify_token(self, token: str) -> dict[str, Any] | None:
        """
        Decode ``token`` and return its claims, or None when it is invalid,
        expired, or not an admin token.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except InvalidTokenError as e:
            logger.info("Rejected admin token: %s", e.__class__.__name__)
            return None

        if payload.get("sub") != ADMIN_SUBJECT or payload.get("scope") != ADMIN_SCOPE:
            return None
        return payload
