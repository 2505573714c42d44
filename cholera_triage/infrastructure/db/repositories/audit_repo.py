from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from cholera_triage.infrastructure.db.models_sqlalchemy import AuditLog


class AuditLogRepository:
    def add_event(
        self,
        session: Session,
        *,
        user_id: int | None,
        entity_type: str,
        entity_id: str,
        action: str,
        payload_json: str | None = None,
        event_ts: datetime | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            payload_json=payload_json,
        )
        if event_ts is not None:
            entry.event_ts = event_ts
        session.add(entry)
        return entry

    def list_for_entity(self, session: Session, entity_type: str, entity_id: str) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.id.asc())
        )
        return list(session.execute(stmt).scalars())
