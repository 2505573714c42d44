from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from cholera_triage.domain.errors import NotFoundError
from cholera_triage.infrastructure.db.repositories.audit_repo import AuditLogRepository
from cholera_triage.infrastructure.db.repositories.user_repo import UserRepository


def resolve_at(at: datetime | None) -> datetime:
    """Return ``at`` as naive UTC, defaulting to the current time."""
    if at is None:
        return datetime.now(UTC).replace(tzinfo=None)
    if at.tzinfo is not None:
        return at.astimezone(UTC).replace(tzinfo=None)
    return at


def resolve_actor(session: Session, user_repo: UserRepository, actor_id: int | None) -> tuple[str, str]:
    if actor_id is None:
        return "system", "system"
    actor = user_repo.get_by_id(session, actor_id)
    if actor is None:
        raise NotFoundError(f"Utilizador #{actor_id} não encontrado")
    return str(actor.login), str(actor.role)


def write_audit(
    audit_repo: AuditLogRepository,
    session: Session,
    *,
    schema: str,
    entity_type: str,
    entity_id: int | str,
    action: str,
    actor_id: int | None,
    actor_role: str,
    at: datetime,
    status_from: str | None = None,
    status_to: str | None = None,
    changes: dict[str, Any] | None = None,
) -> None:
    payload_json = json.dumps(
        {
            "schema": schema,
            "actor": {"user_id": actor_id, "role": actor_role},
            "event": {
                "ts": at.isoformat(),
                "action": action,
                "status_from": status_from,
                "status_to": status_to,
            },
            "entity": {"type": entity_type, "id": str(entity_id)},
            "changes": changes or {},
        },
        ensure_ascii=False,
        default=str,
    )
    audit_repo.add_event(
        session,
        user_id=actor_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=f"{entity_type}_{action}",
        payload_json=payload_json,
        event_ts=at,
    )
