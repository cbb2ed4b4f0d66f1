from __future__ import annotations

import json
import os
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from core.actor import ActorContext
from models.audit_log import AuditLog


class AuditService:
    LEVELS = {"DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"}

    @staticmethod
    def generate_reference(at_time: datetime | None = None) -> str:
        timestamp = (at_time or datetime.utcnow()).strftime("%Y%m%d")
        return f"AUD-{timestamp}-{uuid4().hex[:8].upper()}"

    @staticmethod
    def _safe_level(level: str | None) -> str:
        normalized = (level or "INFO").strip().upper()
        return normalized if normalized in AuditService.LEVELS else "INFO"

    @staticmethod
    def build_log(
        *,
        action: str,
        category: str = "carregamento",
        level: str = "INFO",
        message: str | None = None,
        actor: ActorContext | None = None,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
        metadata: dict | None = None,
    ) -> AuditLog:
        """Create an unsaved entry so callers can commit it with their own changes."""
        role = getattr(actor, "role", None)
        return AuditLog(
            reference=AuditService.generate_reference(),
            level=AuditService._safe_level(level),
            category=(category or "carregamento").strip().lower(),
            action=action,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=getattr(actor, "user_id", None),
            actor_email=getattr(actor, "email", None),
            actor_role=role.value if hasattr(role, "value") else role,
            metadata_json=json.dumps(metadata or {}, default=str),
        )

    @staticmethod
    def prune_old_logs(db: Session) -> int:
        retention_days = int(os.getenv("AUDIT_LOG_RETENTION_DAYS", "180"))
        cutoff = datetime.utcnow() - timedelta(days=retention_days)

        deleted = db.query(AuditLog).filter(AuditLog.event_time < cutoff).delete()  # type: ignore[arg-type]
        db.commit()
        return int(deleted or 0)

    @staticmethod
    def list_logs(
        db: Session,
        *,
        limit: int,
        offset: int,
        level: str | None = None,
        category: str | None = None,
        action: str | None = None,
        actor_email: str | None = None,
        entity_id: UUID | None = None,
        from_time: datetime | None = None,
        to_time: datetime | None = None,
    ) -> tuple[int, list[AuditLog]]:
        query = db.query(AuditLog)

        if level:
            query = query.filter(AuditLog.level == level.strip().upper())
        if category:
            query = query.filter(AuditLog.category == category.strip().lower())
        if action:
            query = query.filter(AuditLog.action == action.strip())
        if actor_email:
            query = query.filter(AuditLog.actor_email.ilike(f"%{actor_email.strip()}%"))
        if entity_id is not None:
            query = query.filter(AuditLog.entity_id == entity_id)
        if from_time is not None:
            query = query.filter(AuditLog.event_time >= from_time)
        if to_time is not None:
            query = query.filter(AuditLog.event_time <= to_time)

        total = query.count()
        logs = query.order_by(AuditLog.event_time.desc()).offset(offset).limit(limit).all()
        return total, logs

    @staticmethod
    def entity_history(db: Session, entity_type: str, entity_id: UUID) -> list[AuditLog]:
        """Entries recorded for one entity, oldest first."""
        return (
            db.query(AuditLog)
            .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.event_time.asc())
            .all()
        )


__all__ = ["AuditService"]
