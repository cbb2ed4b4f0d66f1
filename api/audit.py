from datetime import datetime
from uuid import UUID
import os

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.dependencies import require_admin
from core.database import get_db
from schemas.audit_log import AuditLogListResponse
from services.audit_service import AuditService

router = APIRouter(prefix="/admin/audit", tags=["audit"], dependencies=[Depends(require_admin)])


def _max_limit() -> int:
    return int(os.getenv("AUDIT_LOG_MAX_LIMIT", "200"))


@router.get("/logs", response_model=AuditLogListResponse)
def list_audit_logs(
    db: Session = Depends(get_db),
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    level: str | None = Query(default=None),
    category: str | None = Query(default=None),
    action: str | None = Query(default=None),
    actor_email: str | None = Query(default=None),
    entity_id: UUID | None = Query(default=None),
    from_time: datetime | None = Query(default=None),
    to_time: datetime | None = Query(default=None),
):
    total, logs = AuditService.list_logs(
        db,
        limit=min(limit, _max_limit()),
        offset=offset,
        level=level,
        category=category,
        action=action,
        actor_email=actor_email,
        entity_id=entity_id,
        from_time=from_time,
        to_time=to_time,
    )

    return {"total": total, "count": len(logs), "logs": logs}


@router.post("/prune")
def prune_audit_logs(db: Session = Depends(get_db)):
    deleted = AuditService.prune_old_logs(db)
    return {"deleted": deleted}
