"""
Password Security

Credential hashing and the random tokens used by the password reset and
email verification workflows:
- Argon2 hashing (bcrypt accepted for older hashes) via passlib
- Transparent re-hash detection when cost parameters change
- URL-safe one-time tokens, stored only as SHA-256 digests
"""

import hashlib
import secrets
from typing import Tuple
import logging

from passlib.context import CryptContext

from .config import Settings

logger = logging.getLogger(__name__)

ONE_TIME_TOKEN_BYTES = 32


class PasswordHasher:
    """Hashes and verifies passwords with a configurable passlib context."""

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 2,
        bcrypt_rounds: int = 12,
    ):
        # Argon2 first: new hashes use it, bcrypt hashes still verify
        self.pwd_context = CryptContext(
            schemes=["argon2", "bcrypt"],
            deprecated="auto",
            argon2__time_cost=time_cost,
            argon2__memory_cost=memory_cost,
            argon2__parallelism=parallelism,
            bcrypt__rounds=bcrypt_rounds,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
            bcrypt_rounds=settings.bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        A malformed or unrecognised stored hash counts as a mismatch.
        """
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except ValueError as e:
            logger.error(f"Password verification failed: {e}")
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        return self.pwd_context.needs_update(hashed_password)


def hash_token(token: str) -> str:
    """SHA-256 hex digest under which one-time tokens are stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_one_time_token() -> Tuple[str, str]:
    """
    Generate a random token for reset or verification links.

    Returns:
        (raw token to hand to the user, digest to store)
    """
    token = secrets.token_urlsafe(ONE_TIME_TOKEN_BYTES)
    return token, hash_token(token)
