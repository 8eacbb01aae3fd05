"""User model"""

import uuid

from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from vidtube.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Account record; also holds the single live refresh token"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    fullname = Column(String(100), nullable=False, index=True)
    avatar = Column(String(500), nullable=False)
    cover_image = Column(String(500), nullable=False, default="")
    watch_history = Column(JSON, nullable=False, default=list)
    password_hash = Column(String(255), nullable=False)
    # At most one live refresh token per account; NULL means logged out
    refresh_token = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    audit_events = relationship("AuditEvent", back_populates="user")

    __table_args__ = (
        Index('idx_users_username_email', 'username', 'email'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
