"""Security utilities - password hashing"""

from functools import lru_cache
from typing import Optional
import logging

import bcrypt

from vidtube.config import settings
from vidtube.core.exceptions import InternalServerError, ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


@lru_cache()
def _dummy_hash() -> str:
    # Compared against when the account does not exist so that login timing
    # does not reveal whether an identifier is registered.
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(b"vidtube-dummy-password", salt).decode("utf-8")


def check_password_length(password: str) -> None:
    """
    Reject passwords bcrypt cannot hash without truncation

    Raises:
        ValidationError: If the encoded password exceeds 72 bytes
    """
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password
        rounds: Cost factor, defaults to settings.BCRYPT_ROUNDS

    Returns:
        str: Hashed password

    Raises:
        ValidationError: If the password is too long to hash
        InternalServerError: If the hashing backend fails
    """
    check_password_length(password)
    try:
        salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")
    except (ValueError, TypeError) as exc:
        logger.error("Password hashing failed: %s", exc.__class__.__name__)
        raise InternalServerError("Something went wrong while securing the password") from exc


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches
    """
    if not plain_password or not hashed_password:
        return False
    if len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def burn_password_check(plain_password: str) -> None:
    """Spend the same bcrypt work as a real check, discarding the result"""
    verify_password(plain_password or "x", _dummy_hash())
