from datetime import datetime
import json
import uuid

from sqlalchemy import Column, DateTime, String, Text, Uuid

from core.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore
    reference = Column(String(40), unique=True, index=True, nullable=False)  # type: ignore
    event_time = Column(DateTime, default=datetime.utcnow, index=True, nullable=False)  # type: ignore
    level = Column(String(16), index=True, nullable=False, default="INFO")  # type: ignore
    category = Column(String(64), index=True, nullable=False, default="carregamento")  # type: ignore
    action = Column(String(160), nullable=False)  # type: ignore
    message = Column(Text, nullable=True)  # type: ignore

    # Subject of the event, e.g. ("carregamento", <id>)
    entity_type = Column(String(40), index=True, nullable=True)  # type: ignore
    entity_id = Column(Uuid, index=True, nullable=True)  # type: ignore

    actor_id = Column(Uuid, nullable=True)  # type: ignore
    actor_email = Column(String(255), index=True, nullable=True)  # type: ignore
    actor_role = Column(String(32), index=True, nullable=True)  # type: ignore

    metadata_json = Column(Text, nullable=True)  # type: ignore

    @property
    def metadata_dict(self) -> dict:
        raw_text = getattr(self, "metadata_json", None)
        if not raw_text:
            return {}
        try:
            payload = json.loads(str(raw_text))
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
