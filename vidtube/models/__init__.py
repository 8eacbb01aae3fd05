"""Database models"""

from vidtube.models.user import User
from vidtube.models.audit import AuditEvent

__all__ = ["User", "AuditEvent"]
