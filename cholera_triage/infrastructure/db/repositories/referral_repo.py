from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from cholera_triage.domain.constants import ReferralPriority, ReferralStatus
from cholera_triage.domain.errors import VersionConflictError
from cholera_triage.infrastructure.db import models_sqlalchemy as models

_PLAIN_FIELDS = (
    "triage_id",
    "patient_id",
    "origin_facility_id",
    "destination_facility_id",
    "origin_care_point_id",
    "destination_care_point_id",
    "vehicle_id",
    "responsible_id",
    "status",
    "priority",
    "referral_type",
    "reason",
    "notes",
    "requested_at",
    "estimated_departure",
    "estimated_arrival",
    "departed_at",
    "arrived_at",
)

_OPEN_STATUSES = (ReferralStatus.PENDING.value, ReferralStatus.APPROVED.value)

_PRIORITY_RANK = case(
    {item.value: index for index, item in enumerate(ReferralPriority)},
    value=models.Referral.priority,
    else_=0,
)


class ReferralRepository:
    def get_referral(self, session: Session, referral_id: int) -> models.Referral | None:
        stmt = select(models.Referral).where(
            models.Referral.id == referral_id,
            models.Referral.deleted_at.is_(None),
        )
        return session.execute(stmt).scalar_one_or_none()

    def list_referrals(
        self,
        session: Session,
        *,
        filters: dict[str, object] | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[models.Referral]:
        filters = filters or {}
        stmt = select(models.Referral).where(models.Referral.deleted_at.is_(None))
        for key in ("status", "priority"):
            value = filters.get(key)
            if value:
                stmt = stmt.where(getattr(models.Referral, key) == str(value))
        for key in ("origin_facility_id", "destination_facility_id", "vehicle_id", "triage_id", "patient_id"):
            value = filters.get(key)
            if isinstance(value, int):
                stmt = stmt.where(getattr(models.Referral, key) == value)
        stmt = stmt.order_by(models.Referral.created_at.desc(), models.Referral.id.desc()).offset(offset).limit(limit)
        return list(session.execute(stmt).scalars())

    def list_pending(
        self,
        session: Session,
        *,
        priority: str | None = None,
        destination_facility_id: int | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[models.Referral]:
        stmt = select(models.Referral).where(
            models.Referral.deleted_at.is_(None),
            models.Referral.status.in_(_OPEN_STATUSES),
        )
        if priority:
            stmt = stmt.where(models.Referral.priority == priority)
        if destination_facility_id is not None:
            stmt = stmt.where(models.Referral.destination_facility_id == destination_facility_id)
        stmt = (
            stmt.order_by(_PRIORITY_RANK.desc(), models.Referral.requested_at.asc(), models.Referral.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())

    def count_open_emergencies(self, session: Session) -> int:
        stmt = select(func.count(models.Referral.id)).where(
            models.Referral.deleted_at.is_(None),
            models.Referral.status.in_(_OPEN_STATUSES),
            models.Referral.priority == ReferralPriority.EMERGENCY.value,
        )
        return int(session.execute(stmt).scalar_one())

    def count_active_for_triage(
        self,
        session: Session,
        triage_id: int,
        *,
        active_statuses: Iterable[str],
        exclude_id: int | None = None,
    ) -> int:
        stmt = select(func.count(models.Referral.id)).where(
            models.Referral.deleted_at.is_(None),
            models.Referral.triage_id == triage_id,
            models.Referral.status.in_([str(item) for item in active_statuses]),
        )
        if exclude_id is not None:
            stmt = stmt.where(models.Referral.id != exclude_id)
        return int(session.execute(stmt).scalar_one())

    def create_referral(self, session: Session, *, payload: dict[str, Any], actor_login: str) -> models.Referral:
        now = models.utc_now()
        row = models.Referral(
            created_at=now,
            created_by=actor_login,
            updated_at=now,
            updated_by=actor_login,
        )
        self._apply_payload(row, payload)
        session.add(row)
        session.flush()
        return row

    def update_referral(
        self,
        session: Session,
        row: models.Referral,
        *,
        payload: dict[str, Any],
        actor_login: str,
        expected_version: int | None = None,
    ) -> models.Referral:
        if expected_version is not None and int(row.version) != expected_version:
            raise VersionConflictError("Conflito de versão do encaminhamento: registo alterado por outro utilizador")
        self._apply_payload(row, payload)
        row.updated_at = models.utc_now()  # type: ignore[assignment]
        row.updated_by = actor_login  # type: ignore[assignment]
        session.flush()
        return row

    def soft_delete(self, session: Session, row: models.Referral, *, actor_login: str) -> None:
        row.deleted_at = models.utc_now()  # type: ignore[assignment]
        row.updated_by = actor_login  # type: ignore[assignment]
        session.flush()

    def to_dict(self, row: models.Referral) -> dict[str, Any]:
        payload: dict[str, Any] = {field: getattr(row, field) for field in _PLAIN_FIELDS}
        payload.update(
            {
                "id": int(row.id),
                "required_resources": json.loads(row.required_resources_json or "[]"),
                "created_at": row.created_at,
                "created_by": row.created_by,
                "updated_at": row.updated_at,
                "updated_by": row.updated_by,
                "version": int(row.version),
            }
        )
        return payload

    def _apply_payload(self, row: models.Referral, payload: dict[str, Any]) -> None:
        for field in _PLAIN_FIELDS:
            if field in payload:
                setattr(row, field, models.normalize_datetime(payload[field]))
        if "required_resources" in payload:
            row.required_resources_json = json.dumps(  # type: ignore[assignment]
                list(payload["required_resources"] or []),
                ensure_ascii=False,
            )
