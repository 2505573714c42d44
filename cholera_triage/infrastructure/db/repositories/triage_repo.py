from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from cholera_triage.domain.constants import TriageStatus, UrgencyLevel
from cholera_triage.domain.errors import VersionConflictError
from cholera_triage.infrastructure.db import models_sqlalchemy as models

_JSON_FIELD_MAP = {
    "symptom_observations": "symptoms_json",
    "recommendations": "recommendations_json",
    "referral_history": "referral_history_json",
}

_PLAIN_FIELDS = (
    "patient_id",
    "facility_id",
    "care_point_id",
    "clinician_id",
    "status",
    "urgency_level",
    "dehydration_index",
    "temperature",
    "heart_rate",
    "respiratory_rate",
    "cholera_probability",
    "observations",
    "symptom_onset_at",
    "concluded_at",
)


def _to_json(value: object, *, default: str) -> str:
    if value is None:
        return default
    return json.dumps(value, ensure_ascii=False, default=str)


def _from_json(value: object, *, default: object) -> object:
    if value is None:
        return default
    if isinstance(value, (list, dict)):
        return value
    try:
        return json.loads(str(value))
    except json.JSONDecodeError:
        return default


class TriageRepository:
    def get_triage(self, session: Session, triage_id: int) -> models.Triage | None:
        stmt = select(models.Triage).where(models.Triage.id == triage_id, models.Triage.deleted_at.is_(None))
        return session.execute(stmt).scalar_one_or_none()

    def list_triages(
        self,
        session: Session,
        *,
        filters: dict[str, object] | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[models.Triage]:
        filters = filters or {}
        stmt = select(models.Triage).where(models.Triage.deleted_at.is_(None))

        status = filters.get("status")
        if status:
            stmt = stmt.where(models.Triage.status == str(status))

        urgency_level = filters.get("urgency_level")
        if urgency_level:
            stmt = stmt.where(models.Triage.urgency_level == str(urgency_level))

        for key in ("patient_id", "facility_id", "care_point_id"):
            value = filters.get(key)
            if isinstance(value, int):
                stmt = stmt.where(getattr(models.Triage, key) == value)

        min_probability = filters.get("min_probability")
        if isinstance(min_probability, (int, float)):
            stmt = stmt.where(models.Triage.cholera_probability >= float(min_probability))

        stmt = stmt.order_by(models.Triage.created_at.desc(), models.Triage.id.desc()).offset(offset).limit(limit)
        return list(session.execute(stmt).scalars())

    def list_critical(self, session: Session) -> list[models.Triage]:
        stmt = (
            select(models.Triage)
            .where(
                models.Triage.deleted_at.is_(None),
                models.Triage.urgency_level.in_([UrgencyLevel.HIGH.value, UrgencyLevel.CRITICAL.value]),
                models.Triage.status.in_([TriageStatus.PENDING.value, TriageStatus.IN_PROGRESS.value]),
            )
            .order_by(models.Triage.cholera_probability.desc(), models.Triage.id.asc())
        )
        return list(session.execute(stmt).scalars())

    def create_triage(self, session: Session, *, payload: dict[str, Any], actor_login: str) -> models.Triage:
        now = models.utc_now()
        row = models.Triage(
            created_at=now,
            created_by=actor_login,
            updated_at=now,
            updated_by=actor_login,
        )
        self._apply_payload(row, payload)
        session.add(row)
        session.flush()
        return row

    def update_triage(
        self,
        session: Session,
        row: models.Triage,
        *,
        payload: dict[str, Any],
        actor_login: str,
        expected_version: int | None = None,
    ) -> models.Triage:
        if expected_version is not None and int(row.version) != expected_version:
            raise VersionConflictError("Conflito de versão da triagem: registo alterado por outro utilizador")
        self._apply_payload(row, payload)
        row.updated_at = models.utc_now()  # type: ignore[assignment]
        row.updated_by = actor_login  # type: ignore[assignment]
        session.flush()
        return row

    def soft_delete(self, session: Session, row: models.Triage, *, actor_login: str) -> None:
        row.deleted_at = models.utc_now()  # type: ignore[assignment]
        row.updated_by = actor_login  # type: ignore[assignment]
        session.flush()

    def to_dict(self, row: models.Triage) -> dict[str, Any]:
        payload: dict[str, Any] = {field: getattr(row, field) for field in _PLAIN_FIELDS}
        payload.update(
            {
                "id": int(row.id),
                "symptom_observations": _from_json(row.symptoms_json, default=[]),
                "recommendations": _from_json(row.recommendations_json, default=[]),
                "referral_history": _from_json(row.referral_history_json, default=[]),
                "created_at": row.created_at,
                "created_by": row.created_by,
                "updated_at": row.updated_at,
                "updated_by": row.updated_by,
                "version": int(row.version),
            }
        )
        return payload

    def _apply_payload(self, row: models.Triage, payload: dict[str, Any]) -> None:
        for field in _PLAIN_FIELDS:
            if field in payload:
                setattr(row, field, models.normalize_datetime(payload[field]))
        for field, column in _JSON_FIELD_MAP.items():
            if field in payload:
                setattr(row, column, _to_json(payload[field], default="[]"))
