"""Audit service for authentication events."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vidtube.models.audit import AuditEvent

logger = logging.getLogger(__name__)


class AuditService:
    """Persist immutable audit trail entries."""

    @staticmethod
    def log_event(
        db: Session,
        *,
        user_id: Optional[str],
        action: str,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEvent]:
        event = AuditEvent(
            user_id=user_id,
            action=action,
            ip_address=ip_address,
            metadata_json=json.dumps(metadata or {}, ensure_ascii=False),
        )
        try:
            db.add(event)
            db.commit()
            db.refresh(event)
        except SQLAlchemyError as exc:
            # The auth operation already committed; losing its trail entry must not fail it
            db.rollback()
            logger.error("Failed to record audit event %s: %s", action, exc)
            return None
        return event


audit_service = AuditService()
