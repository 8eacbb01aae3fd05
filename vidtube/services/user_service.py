"""User service - profile reads and updates for the authenticated user"""

from sqlalchemy.orm import Session
from typing import Optional
import logging

from vidtube.core.exceptions import (
    ConflictError,
    InternalServerError,
    ResourceNotFoundError,
    UploadError,
    ValidationError,
)
from vidtube.models.user import User
from vidtube.repositories.user_repository import user_repository
from vidtube.services.asset_storage import AssetStorage, asset_storage

logger = logging.getLogger(__name__)


class UserService:
    """Service for profile management"""

    def __init__(self, storage: AssetStorage):
        self.storage = storage

    def update_account_details(
        self,
        db: Session,
        user: User,
        fullname: Optional[str],
        email: Optional[str]
    ) -> User:
        """
        Update full name and email

        Args:
            db: Database session
            user: Current user
            fullname: New display name
            email: New email address

        Returns:
            Updated user
        """
        if not fullname or not fullname.strip() or not email or not email.strip():
            raise ValidationError("All fields are required")
        if "@" not in email:
            raise ValidationError("Please enter a valid email address")

        email = email.strip().lower()
        holder = user_repository.find_by_username_or_email(db, email=email)
        if holder and holder.id != user.id:
            raise ConflictError("Email is already in use")

        if not user_repository.update_fields(db, user.id, {"fullname": fullname.strip(), "email": email}):
            raise ResourceNotFoundError("User")
        logger.info(f"Updated account details for user {user.id}")
        return user

    def _replace_image(self, db: Session, user: User, field: str, local_path: Optional[str], label: str) -> User:
        if not local_path:
            raise ValidationError(f"{label} file is missing")

        url, error = self.storage.store(local_path)
        if not url:
            raise UploadError(f"Error while uploading {label.lower()}: {error}")

        previous = getattr(user, field)
        try:
            updated = user_repository.update_fields(db, user.id, {field: url})
        except InternalServerError:
            self.storage.remove(url)
            raise
        if not updated:
            self.storage.remove(url)
            raise ResourceNotFoundError("User")

        if previous:
            self.storage.remove(previous)
        logger.info(f"Updated {field} for user {user.id}")
        return user

    def update_avatar(self, db: Session, user: User, local_path: Optional[str]) -> User:
        """Replace the avatar; the old value stays if the upload fails"""
        return self._replace_image(db, user, "avatar", local_path, "Avatar")

    def update_cover_image(self, db: Session, user: User, local_path: Optional[str]) -> User:
        """Replace the cover image; the old value stays if the upload fails"""
        return self._replace_image(db, user, "cover_image", local_path, "Cover image")


# Singleton instance
user_service = UserService(asset_storage)
