"""Auth service - registration, login, session refresh, logout, password change"""

from __future__ import annotations

import hmac
import logging
from typing import Optional, Tuple

from prometheus_client import Counter
from sqlalchemy.orm import Session

from vidtube.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InternalServerError,
    InvalidCredentialsError,
    UploadError,
    ValidationError,
)
from vidtube.core.security import (
    burn_password_check,
    check_password_length,
    get_password_hash,
    verify_password,
)
from vidtube.core.tokens import TokenIssuer, TokenKind, TokenPair, token_issuer
from vidtube.models.user import User
from vidtube.repositories.user_repository import user_repository
from vidtube.services.asset_storage import AssetStorage, asset_storage, discard_local_file

logger = logging.getLogger(__name__)

AUTH_EVENTS = Counter(
    "vidtube_auth_events_total",
    "Authentication lifecycle events",
    ["event", "outcome"],
)

REFRESH_REUSED_MESSAGE = "Refresh Token is Expired or Already Used"

# Column widths of the users table
FIELD_LIMITS = (("username", "Username", 50), ("fullname", "Full name", 100), ("email", "Email", 255))


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


class AuthService:
    """
    Credential and session lifecycle.

    Each account holds at most one live refresh token (``User.refresh_token``).
    Login and refresh overwrite it, logout and password change clear it.
    """

    def __init__(self, issuer: TokenIssuer, storage: AssetStorage):
        self.issuer = issuer
        self.storage = storage

    def register(
        self,
        db: Session,
        *,
        username: Optional[str],
        email: Optional[str],
        fullname: Optional[str],
        password: Optional[str],
        avatar_path: Optional[str],
        cover_path: Optional[str] = None,
    ) -> User:
        """
        Create an account

        Local temp files are always consumed: either stored, or removed
        before the error is raised.

        Args:
            db: Database session
            username: Desired username, stored lower-cased
            email: Email address, stored lower-cased
            fullname: Display name
            password: Plain text password
            avatar_path: Temp path of the avatar upload (required)
            cover_path: Temp path of the cover image upload (optional)

        Returns:
            Created user
        """
        try:
            if any(_is_blank(field) for field in (fullname, email, username, password)):
                raise ValidationError("All fields are required")
            if "@" not in email:
                raise ValidationError("Please enter a valid email address")
            values = {"username": username, "fullname": fullname, "email": email}
            for field, label, limit in FIELD_LIMITS:
                if len(values[field].strip()) > limit:
                    raise ValidationError(f"{label} must be at most {limit} characters")
            check_password_length(password)

            existing = user_repository.find_by_username_or_email(db, username=username, email=email)
            if existing:
                raise ConflictError("User with email or username already exists")

            if not avatar_path:
                raise ValidationError("Avatar file is required")
        except (ValidationError, ConflictError):
            discard_local_file(avatar_path)
            discard_local_file(cover_path)
            raise

        avatar_url, avatar_error = self.storage.store(avatar_path)
        if not avatar_url:
            discard_local_file(cover_path)
            AUTH_EVENTS.labels("register", "upload_failed").inc()
            raise UploadError(f"Failed to upload avatar file: {avatar_error}")

        cover_url = ""
        if cover_path:
            stored, cover_error = self.storage.store(cover_path)
            if stored:
                cover_url = stored
            else:
                logger.warning("Cover image upload failed, continuing without it: %s", cover_error)

        # Stored assets must not outlive a failed insert, whatever the cause
        try:
            password_hash = get_password_hash(password)
            user = user_repository.create(
                db,
                username=username.strip().lower(),
                email=email.strip().lower(),
                fullname=fullname.strip(),
                avatar=avatar_url,
                cover_image=cover_url,
                watch_history=[],
                password_hash=password_hash,
            )
        except Exception:
            self.storage.remove(avatar_url)
            self.storage.remove(cover_url)
            AUTH_EVENTS.labels("register", "failed").inc()
            raise

        AUTH_EVENTS.labels("register", "success").inc()
        logger.info("Registered user %s", user.id)
        return user

    def _issue_session(self, db: Session, user: User) -> TokenPair:
        """Sign a fresh pair and make its refresh token the only live one"""
        pair = self.issuer.issue_pair(user)
        if not user_repository.update_fields(db, user.id, {"refresh_token": pair.refresh_token}):
            raise InternalServerError("Something went wrong while generating Access and Refresh Token")
        return pair

    def login(
        self,
        db: Session,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Tuple[User, TokenPair]:
        """
        Authenticate by username or email and open a session

        Unknown accounts and wrong passwords fail with the same error.

        Returns:
            Tuple of (user, token pair)
        """
        if _is_blank(username) and _is_blank(email):
            raise ValidationError("Username or Email is required")

        user = user_repository.find_by_username_or_email(db, username=username, email=email)
        if not user:
            burn_password_check(password)
            AUTH_EVENTS.labels("login", "failed").inc()
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            AUTH_EVENTS.labels("login", "failed").inc()
            logger.info("Failed login for user %s", user.id)
            raise InvalidCredentialsError()

        pair = self._issue_session(db, user)
        AUTH_EVENTS.labels("login", "success").inc()
        logger.info("User logged in: %s", user.id)
        return user, pair

    def refresh_session(self, db: Session, incoming_token: Optional[str]) -> Tuple[User, TokenPair]:
        """
        Rotate the session's token pair

        The incoming token must verify against the refresh key and equal the
        stored token. The stored token is replaced with a conditional UPDATE,
        so of two concurrent refreshes with the same token only one succeeds.

        Returns:
            Tuple of (user, new token pair)
        """
        if not incoming_token:
            raise AuthenticationError("Unauthorized request - No Refresh Token Provided")

        try:
            claims = self.issuer.verify(incoming_token, TokenKind.REFRESH)
        except AuthenticationError as exc:
            AUTH_EVENTS.labels("refresh", "invalid").inc()
            logger.info("Refresh token rejected: %s", exc.message)
            raise AuthenticationError("Invalid Refresh Token")

        user = user_repository.find_by_id(db, claims["id"])
        if not user:
            AUTH_EVENTS.labels("refresh", "invalid").inc()
            raise AuthenticationError("Invalid Refresh Token")

        stored = user.refresh_token
        if not stored or not hmac.compare_digest(incoming_token.encode("utf-8"), stored.encode("utf-8")):
            AUTH_EVENTS.labels("refresh", "reused").inc()
            logger.warning("Stale refresh token presented for user %s", user.id)
            raise AuthenticationError(REFRESH_REUSED_MESSAGE)

        pair = self.issuer.issue_pair(user)
        rotated = user_repository.update_fields(
            db,
            user.id,
            {"refresh_token": pair.refresh_token},
            expected={"refresh_token": incoming_token},
        )
        if not rotated:
            # Another request rotated this token between our read and write
            AUTH_EVENTS.labels("refresh", "reused").inc()
            raise AuthenticationError(REFRESH_REUSED_MESSAGE)

        AUTH_EVENTS.labels("refresh", "success").inc()
        return user, pair

    def logout(self, db: Session, user: User) -> None:
        """Drop the live refresh token; safe to call repeatedly"""
        user_repository.update_fields(db, user.id, {"refresh_token": None})
        AUTH_EVENTS.labels("logout", "success").inc()
        logger.info("User logged out: %s", user.id)

    def change_password(
        self,
        db: Session,
        user: User,
        old_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Replace the password hash and end the current session

        Clearing the refresh token forces every client holding one to log
        in again with the new password.
        """
        if _is_blank(new_password):
            raise ValidationError("New password is required")

        if not verify_password(old_password, user.password_hash):
            AUTH_EVENTS.labels("change_password", "failed").inc()
            raise AuthenticationError("Invalid old password")

        user_repository.update_fields(
            db,
            user.id,
            {"password_hash": get_password_hash(new_password), "refresh_token": None},
        )
        AUTH_EVENTS.labels("change_password", "success").inc()
        logger.info("Password changed for user %s", user.id)


# Singleton instance
auth_service = AuthService(token_issuer, asset_storage)
