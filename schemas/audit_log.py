from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    id: UUID
    reference: str
    event_time: datetime
    level: str
    category: str
    action: str
    message: str | None
    entity_type: str | None
    entity_id: UUID | None
    actor_id: UUID | None
    actor_email: str | None
    actor_role: str | None
    # ORM rows expose the decoded JSON column as ``metadata_dict``
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata_dict", "metadata"),
    )

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    total: int
    count: int
    logs: list[AuditLogResponse]
