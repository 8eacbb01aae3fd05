"""User persistence - the only code that reads or writes the users table"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vidtube.core.exceptions import ConflictError, DatabaseError
from vidtube.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Find, create and partially update user records"""

    @staticmethod
    def find_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == str(user_id)).first()

    @staticmethod
    def find_by_username_or_email(
        db: Session,
        username: Optional[str] = None,
        email: Optional[str] = None
    ) -> Optional[User]:
        """
        Get the first user matching either identifier

        Args:
            db: Database session
            username: Username, matched case-insensitively
            email: Email address, matched case-insensitively

        Returns:
            Matching user or None
        """
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip().lower())
        if not conditions:
            return None
        return db.query(User).filter(or_(*conditions)).first()

    @staticmethod
    def create(db: Session, **fields: Any) -> User:
        """
        Insert a new user

        Raises:
            ConflictError: A unique constraint was hit by a concurrent insert
            DatabaseError: Any other persistence failure
        """
        user = User(**fields)
        try:
            db.add(user)
            db.commit()
            db.refresh(user)
        except IntegrityError as exc:
            db.rollback()
            logger.warning("User insert hit a unique constraint: %s", exc.__class__.__name__)
            raise ConflictError("User with email or username already exists") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("User insert failed: %s", exc)
            raise DatabaseError("Something went wrong while registering the user") from exc
        return user

    @staticmethod
    def update_fields(
        db: Session,
        user_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Apply a partial update in a single UPDATE statement

        When ``expected`` is given the row is only updated if every listed
        column still holds the expected value, which makes read-compare-write
        sequences atomic per account.

        Args:
            db: Database session
            user_id: User ID
            fields: Column values to set
            expected: Column values that must match for the update to apply

        Returns:
            True if a row was updated
        """
        query = db.query(User).filter(User.id == str(user_id))
        for column, value in (expected or {}).items():
            query = query.filter(getattr(User, column) == value)

        try:
            updated = query.update(fields, synchronize_session=False)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("User with email or username already exists") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("User update failed for %s: %s", user_id, exc)
            raise DatabaseError() from exc

        # Bulk UPDATE bypasses the identity map; drop cached state
        db.expire_all()
        return updated == 1


# Singleton instance
user_repository = UserRepository()
