from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from cholera_triage.application.dto.referral_dto import (
    PendingReferralsDto,
    ReferralCreateRequest,
    ReferralDto,
    ReferralFilters,
    ReferralFromTriageRequest,
    ReferralStatusUpdateRequest,
    ReferralUpdateRequest,
    VehicleAssignmentRequest,
)
from cholera_triage.application.services.audit_support import resolve_actor, resolve_at, write_audit
from cholera_triage.domain.constants import ReferralPriority, ReferralStatus, TriageStatus, VehicleStatus
from cholera_triage.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    ResourceConflictError,
    ValidationError,
    VersionConflictError,
)
from cholera_triage.domain.models.triage import ReferralSummary
from cholera_triage.domain.rules.referral_rules import (
    ACTIVE_REFERRAL_STATUSES,
    derive_referral_type,
    ensure_referral_editable,
    ensure_vehicle_assignable,
    prepend_note,
    priority_for_urgency,
    validate_referral_transition,
)
from cholera_triage.domain.rules.triage_rules import validate_triage_transition
from cholera_triage.infrastructure.db import models_sqlalchemy as models
from cholera_triage.infrastructure.db.repositories.audit_repo import AuditLogRepository
from cholera_triage.infrastructure.db.repositories.patient_repo import PatientRepository
from cholera_triage.infrastructure.db.repositories.referral_repo import ReferralRepository
from cholera_triage.infrastructure.db.repositories.triage_repo import TriageRepository
from cholera_triage.infrastructure.db.repositories.user_repo import UserRepository
from cholera_triage.infrastructure.db.repositories.vehicle_repo import VehicleRepository
from cholera_triage.infrastructure.db.session import session_scope

AUDIT_SCHEMA = "referral.audit.v1"
TRIAGE_AUDIT_SCHEMA = "triage.audit.v1"

_REFERRAL_CONFLICT = "Conflito de versão do encaminhamento: registo alterado por outro utilizador"
_TRIAGE_CONFLICT = "Conflito de versão da triagem: registo alterado por outro utilizador"

_STATUS_EVENTS = {
    ReferralStatus.PENDING: "Encaminhamento pendente",
    ReferralStatus.APPROVED: "Encaminhamento aprovado",
    ReferralStatus.IN_TRANSPORT: "Paciente em transporte",
    ReferralStatus.COMPLETED: "Encaminhamento concluído",
    ReferralStatus.CANCELLED: "Encaminhamento cancelado",
}

_EDITABLE_FIELDS = (
    "destination_facility_id",
    "destination_care_point_id",
    "responsible_id",
    "priority",
    "reason",
    "notes",
    "required_resources",
    "estimated_departure",
    "estimated_arrival",
)

logger = logging.getLogger(__name__)


class ReferralService:
    """Referral (encaminhamento) lifecycle.

    Every mutation runs in a single transaction together with its effects on
    the linked triage and vehicle, so a rejected step leaves no partial writes.
    """

    def __init__(
        self,
        repo: ReferralRepository | None = None,
        triage_repo: TriageRepository | None = None,
        vehicle_repo: VehicleRepository | None = None,
        patient_repo: PatientRepository | None = None,
        user_repo: UserRepository | None = None,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.repo = repo or ReferralRepository()
        self.triage_repo = triage_repo or TriageRepository()
        self.vehicle_repo = vehicle_repo or VehicleRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory

    # queries

    def get_referral(self, referral_id: int) -> ReferralDto:
        with self.session_factory() as session:
            row = self._require(session, referral_id)
            return ReferralDto.model_validate(self.repo.to_dict(row))

    def list_referrals(
        self,
        filters: ReferralFilters | None = None,
        *,
        limit: int = 15,
        offset: int = 0,
    ) -> list[ReferralDto]:
        filter_payload = filters.model_dump(exclude_none=True) if filters else {}
        with self.session_factory() as session:
            rows = self.repo.list_referrals(session, filters=filter_payload, limit=limit, offset=offset)
            return [ReferralDto.model_validate(self.repo.to_dict(row)) for row in rows]

    def list_pending(
        self,
        *,
        priority: str | None = None,
        destination_facility_id: int | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> PendingReferralsDto:
        with self.session_factory() as session:
            rows = self.repo.list_pending(
                session,
                priority=priority,
                destination_facility_id=destination_facility_id,
                limit=limit,
                offset=offset,
            )
            return PendingReferralsDto(
                items=[ReferralDto.model_validate(self.repo.to_dict(row)) for row in rows],
                total_emergencies=self.repo.count_open_emergencies(session),
            )

    def count_emergencies(self) -> int:
        with self.session_factory() as session:
            return self.repo.count_open_emergencies(session)

    # creation

    def create_referral(
        self,
        request: ReferralCreateRequest,
        actor_id: int | None,
        *,
        at: datetime | None = None,
    ) -> ReferralDto:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._create(session, request, actor_id, actor_login, actor_role, event_at)
            return ReferralDto.model_validate(self.repo.to_dict(row))

    def create_from_triage(
        self,
        triage_id: int,
        request: ReferralFromTriageRequest,
        actor_id: int | None,
        *,
        at: datetime | None = None,
    ) -> ReferralDto:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            triage = self._require_triage(session, triage_id)
            create_request = ReferralCreateRequest(
                patient_id=int(triage.patient_id),
                triage_id=triage_id,
                origin_facility_id=triage.facility_id,
                origin_care_point_id=triage.care_point_id if triage.facility_id is None else None,
                destination_facility_id=request.destination_facility_id,
                destination_care_point_id=request.destination_care_point_id,
                responsible_id=request.responsible_id,
                priority=request.priority or priority_for_urgency(str(triage.urgency_level)).value,
                reason=request.reason,
            )
            row = self._create(session, create_request, actor_id, actor_login, actor_role, event_at)
            return ReferralDto.model_validate(self.repo.to_dict(row))

    def _create(
        self,
        session: Session,
        request: ReferralCreateRequest,
        actor_id: int | None,
        actor_login: str,
        actor_role: str,
        event_at: datetime,
    ) -> models.Referral:
        referral_type = derive_referral_type(
            request.origin_facility_id,
            request.destination_facility_id,
            request.origin_care_point_id,
            request.destination_care_point_id,
        )
        if self.patient_repo.get_by_id(session, request.patient_id) is None:
            raise NotFoundError("Paciente não encontrado")

        triage: models.Triage | None = None
        if request.triage_id is not None:
            triage = self._require_triage(session, request.triage_id)
            if int(triage.patient_id) != request.patient_id:
                raise ValidationError("A triagem indicada pertence a outro paciente")
            validate_triage_transition(str(triage.status), TriageStatus.REFERRED)

        status = ReferralStatus.PENDING
        vehicle: models.Vehicle | None = None
        if request.vehicle_id is not None:
            vehicle = self._require_vehicle(session, request.vehicle_id)
            ensure_vehicle_assignable(status, str(vehicle.status), vehicle_id=request.vehicle_id)
            self._dispatch_vehicle(session, vehicle)
            status = ReferralStatus.APPROVED

        row = self.repo.create_referral(
            session,
            payload={
                "triage_id": request.triage_id,
                "patient_id": request.patient_id,
                "origin_facility_id": request.origin_facility_id,
                "destination_facility_id": request.destination_facility_id,
                "origin_care_point_id": request.origin_care_point_id,
                "destination_care_point_id": request.destination_care_point_id,
                "vehicle_id": request.vehicle_id,
                "responsible_id": request.responsible_id,
                "status": status.value,
                "priority": request.priority or ReferralPriority.MEDIUM.value,
                "referral_type": referral_type.value if referral_type else None,
                "reason": request.reason,
                "notes": request.notes,
                "required_resources": request.required_resources,
                "requested_at": event_at,
                "estimated_departure": request.estimated_departure,
                "estimated_arrival": request.estimated_arrival,
            },
            actor_login=actor_login,
        )
        after = self.repo.to_dict(row)
        self._audit(
            session,
            row,
            action="create",
            actor_id=actor_id,
            actor_role=actor_role,
            at=event_at,
            status_to=status.value,
            changes={"before": {}, "after": after},
        )
        if vehicle is not None:
            self._audit_vehicle(session, vehicle, actor_id, actor_role, event_at, referral_id=int(row.id))
        if triage is not None:
            self._link_triage(session, triage, row, actor_id, actor_login, actor_role, event_at)
        logger.info("Referral %s created for patient %s (triage %s)", row.id, row.patient_id, row.triage_id)
        return row

    # updates

    def update_referral(
        self,
        referral_id: int,
        request: ReferralUpdateRequest,
        actor_id: int | None,
        *,
        expected_version: int | None = None,
        at: datetime | None = None,
    ) -> ReferralDto:
        event_at = resolve_at(at)
        supplied = request.model_fields_set
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, referral_id)
            ensure_referral_editable(str(row.status))
            before = self.repo.to_dict(row)

            payload: dict[str, Any] = {field: getattr(request, field) for field in _EDITABLE_FIELDS if field in supplied}
            if "reason" in payload and not payload["reason"]:
                raise ValidationError("O motivo do encaminhamento é obrigatório")
            if "priority" in payload and payload["priority"] is None:
                payload.pop("priority")
            merged = {**before, **payload}
            referral_type = derive_referral_type(
                merged["origin_facility_id"],
                merged["destination_facility_id"],
                merged["origin_care_point_id"],
                merged["destination_care_point_id"],
            )
            payload["referral_type"] = referral_type.value if referral_type else None

            row = self._save(session, row, payload, actor_login, expected_version)
            after = self.repo.to_dict(row)
            self._audit(
                session,
                row,
                action="update",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=str(before["status"]),
                status_to=str(after["status"]),
                changes={
                    key: {"before": before.get(key), "after": value}
                    for key, value in after.items()
                    if key not in {"updated_at", "version"} and before.get(key) != value
                },
            )
            self._sync_triage_summary(session, row, actor_login)
            return ReferralDto.model_validate(after)

    def update_status(
        self,
        referral_id: int,
        request: ReferralStatusUpdateRequest,
        actor_id: int | None,
        *,
        expected_version: int | None = None,
        at: datetime | None = None,
    ) -> ReferralDto:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, referral_id)
            current = str(row.status)
            target = ReferralStatus(request.status)
            validate_referral_transition(current, target)

            payload: dict[str, Any] = {}
            if request.observation:
                payload["notes"] = prepend_note(row.notes, request.observation, _STATUS_EVENTS[target], event_at)
            if current == target:
                if target == ReferralStatus.IN_TRANSPORT and request.departed_at is not None:
                    payload["departed_at"] = request.departed_at
                if target == ReferralStatus.COMPLETED and request.arrived_at is not None:
                    payload["arrived_at"] = request.arrived_at
                if payload:
                    row = self._save(session, row, payload, actor_login, expected_version)
                return ReferralDto.model_validate(self.repo.to_dict(row))

            payload["status"] = target.value
            if target == ReferralStatus.IN_TRANSPORT and row.departed_at is None:
                payload["departed_at"] = request.departed_at or event_at
            if target == ReferralStatus.COMPLETED and row.arrived_at is None:
                payload["arrived_at"] = request.arrived_at or event_at

            row = self._save(session, row, payload, actor_login, expected_version)
            self._audit(
                session,
                row,
                action="status",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=current,
                status_to=target.value,
                changes={"observation": request.observation} if request.observation else None,
            )
            self._apply_triage_effects(session, row, target, actor_id, actor_login, actor_role, event_at)
            logger.info("Referral %s status %s -> %s", referral_id, current, target.value)
            return ReferralDto.model_validate(self.repo.to_dict(row))

    def assign_vehicle(
        self,
        referral_id: int,
        request: VehicleAssignmentRequest,
        actor_id: int | None,
        *,
        expected_version: int | None = None,
        at: datetime | None = None,
    ) -> ReferralDto:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, referral_id)
            vehicle = self._require_vehicle(session, request.vehicle_id)
            current = str(row.status)
            ensure_vehicle_assignable(
                current,
                str(vehicle.status),
                vehicle_id=request.vehicle_id,
                assigned_vehicle_id=row.vehicle_id,  # type: ignore[arg-type]
            )
            self._dispatch_vehicle(session, vehicle)

            payload: dict[str, Any] = {"vehicle_id": int(vehicle.id)}
            if current == ReferralStatus.PENDING:
                payload["status"] = ReferralStatus.APPROVED.value
            if "estimated_departure" in request.model_fields_set:
                payload["estimated_departure"] = request.estimated_departure
            if "estimated_arrival" in request.model_fields_set:
                payload["estimated_arrival"] = request.estimated_arrival
            if request.observation:
                payload["notes"] = prepend_note(
                    row.notes,
                    request.observation,
                    f"Veículo {vehicle.plate} atribuído",
                    event_at,
                )
            row = self._save(session, row, payload, actor_login, expected_version)
            self._audit(
                session,
                row,
                action="assign_vehicle",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=current,
                status_to=str(row.status),
                changes={"vehicle_id": int(vehicle.id)},
            )
            self._audit_vehicle(session, vehicle, actor_id, actor_role, event_at, referral_id=referral_id)
            if current != str(row.status):
                self._sync_triage_summary(session, row, actor_login)
            logger.info("Vehicle %s assigned to referral %s", vehicle.id, referral_id)
            return ReferralDto.model_validate(self.repo.to_dict(row))

    def delete_referral(self, referral_id: int, actor_id: int | None, *, at: datetime | None = None) -> None:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, referral_id)
            if str(row.status) == ReferralStatus.IN_TRANSPORT:
                raise InvalidTransitionError("Não é possível excluir um encaminhamento em transporte")
            try:
                self.repo.soft_delete(session, row, actor_login=actor_login)
            except StaleDataError as exc:
                raise VersionConflictError(_REFERRAL_CONFLICT) from exc
            self._audit(
                session,
                row,
                action="delete",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=str(row.status),
            )
            if row.triage_id is None:
                return
            triage = self.triage_repo.get_triage(session, int(row.triage_id))
            if triage is not None and str(triage.status) == TriageStatus.REFERRED:
                payload: dict[str, Any] = {"status": TriageStatus.CONCLUDED.value}
                if triage.concluded_at is None:
                    payload["concluded_at"] = event_at
                self._save_triage(session, triage, payload, actor_login)
                self._audit_triage(
                    session,
                    triage,
                    actor_id,
                    actor_role,
                    event_at,
                    status_from=TriageStatus.REFERRED.value,
                    referral_id=referral_id,
                )

    # helpers

    def _require(self, session: Session, referral_id: int) -> models.Referral:
        row = self.repo.get_referral(session, referral_id)
        if row is None:
            raise NotFoundError("Encaminhamento não encontrado")
        return row

    def _require_triage(self, session: Session, triage_id: int) -> models.Triage:
        triage = self.triage_repo.get_triage(session, triage_id)
        if triage is None:
            raise NotFoundError("Triagem não encontrada")
        return triage

    def _require_vehicle(self, session: Session, vehicle_id: int) -> models.Vehicle:
        vehicle = self.vehicle_repo.get_by_id(session, vehicle_id)
        if vehicle is None:
            raise NotFoundError("Veículo não encontrado")
        return vehicle

    def _dispatch_vehicle(self, session: Session, vehicle: models.Vehicle) -> None:
        # The version-guarded UPDATE lets exactly one concurrent assignment win.
        vehicle.status = VehicleStatus.IN_TRANSIT.value  # type: ignore[assignment]
        try:
            session.flush()
        except StaleDataError as exc:
            raise ResourceConflictError(
                f"O veículo #{vehicle.id} foi atribuído a outro encaminhamento"
            ) from exc

    def _save(
        self,
        session: Session,
        row: models.Referral,
        payload: dict[str, Any],
        actor_login: str,
        expected_version: int | None,
    ) -> models.Referral:
        try:
            return self.repo.update_referral(
                session,
                row,
                payload=payload,
                actor_login=actor_login,
                expected_version=expected_version,
            )
        except StaleDataError as exc:
            raise VersionConflictError(_REFERRAL_CONFLICT) from exc

    def _save_triage(
        self,
        session: Session,
        triage: models.Triage,
        payload: dict[str, Any],
        actor_login: str,
    ) -> models.Triage:
        try:
            return self.triage_repo.update_triage(session, triage, payload=payload, actor_login=actor_login)
        except StaleDataError as exc:
            raise VersionConflictError(_TRIAGE_CONFLICT) from exc

    def _history_with(self, triage: models.Triage, row: models.Referral) -> list[dict[str, Any]]:
        history = [
            ReferralSummary.from_dict(item) for item in self.triage_repo.to_dict(triage)["referral_history"]
        ]
        summary = ReferralSummary(
            referral_id=int(row.id),
            requested_at=row.requested_at,  # type: ignore[arg-type]
            reason=str(row.reason),
            status=str(row.status),
            destination_facility_id=row.destination_facility_id,  # type: ignore[arg-type]
            destination_care_point_id=row.destination_care_point_id,  # type: ignore[arg-type]
            responsible_id=row.responsible_id,  # type: ignore[arg-type]
        )
        replaced = False
        for index, item in enumerate(history):
            if item.referral_id == summary.referral_id:
                history[index] = summary
                replaced = True
        if not replaced:
            history.append(summary)
        return [item.to_dict() for item in history]

    def _link_triage(
        self,
        session: Session,
        triage: models.Triage,
        row: models.Referral,
        actor_id: int | None,
        actor_login: str,
        actor_role: str,
        event_at: datetime,
    ) -> None:
        status_from = str(triage.status)
        self._save_triage(
            session,
            triage,
            {"status": TriageStatus.REFERRED.value, "referral_history": self._history_with(triage, row)},
            actor_login,
        )
        if status_from != TriageStatus.REFERRED:
            self._audit_triage(
                session,
                triage,
                actor_id,
                actor_role,
                event_at,
                status_from=status_from,
                referral_id=int(row.id),
            )

    def _sync_triage_summary(self, session: Session, row: models.Referral, actor_login: str) -> None:
        if row.triage_id is None:
            return
        triage = self.triage_repo.get_triage(session, int(row.triage_id))
        if triage is None:
            return
        self._save_triage(session, triage, {"referral_history": self._history_with(triage, row)}, actor_login)

    def _apply_triage_effects(
        self,
        session: Session,
        row: models.Referral,
        target: ReferralStatus,
        actor_id: int | None,
        actor_login: str,
        actor_role: str,
        event_at: datetime,
    ) -> None:
        if row.triage_id is None:
            return
        triage = self.triage_repo.get_triage(session, int(row.triage_id))
        if triage is None:
            return
        status_from = str(triage.status)
        payload: dict[str, Any] = {"referral_history": self._history_with(triage, row)}
        if target == ReferralStatus.COMPLETED and status_from != TriageStatus.CONCLUDED:
            payload["status"] = TriageStatus.CONCLUDED.value
            if triage.concluded_at is None:
                payload["concluded_at"] = event_at
        elif target == ReferralStatus.CANCELLED and status_from == TriageStatus.REFERRED:
            others = self.repo.count_active_for_triage(
                session,
                int(row.triage_id),
                active_statuses=ACTIVE_REFERRAL_STATUSES,
                exclude_id=int(row.id),
            )
            if others == 0:
                payload["status"] = TriageStatus.IN_PROGRESS.value
        self._save_triage(session, triage, payload, actor_login)
        if "status" in payload:
            self._audit_triage(
                session,
                triage,
                actor_id,
                actor_role,
                event_at,
                status_from=status_from,
                referral_id=int(row.id),
            )

    def _audit(
        self,
        session: Session,
        row: models.Referral,
        *,
        action: str,
        actor_id: int | None,
        actor_role: str,
        at: datetime,
        status_from: str | None = None,
        status_to: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> None:
        write_audit(
            self.audit_repo,
            session,
            schema=AUDIT_SCHEMA,
            entity_type="referral",
            entity_id=int(row.id),
            action=action,
            actor_id=actor_id,
            actor_role=actor_role,
            at=at,
            status_from=status_from,
            status_to=status_to,
            changes=changes,
        )

    def _audit_triage(
        self,
        session: Session,
        triage: models.Triage,
        actor_id: int | None,
        actor_role: str,
        at: datetime,
        *,
        status_from: str,
        referral_id: int,
    ) -> None:
        write_audit(
            self.audit_repo,
            session,
            schema=TRIAGE_AUDIT_SCHEMA,
            entity_type="triage",
            entity_id=int(triage.id),
            action="status",
            actor_id=actor_id,
            actor_role=actor_role,
            at=at,
            status_from=status_from,
            status_to=str(triage.status),
            changes={"referral_id": referral_id},
        )

    def _audit_vehicle(
        self,
        session: Session,
        vehicle: models.Vehicle,
        actor_id: int | None,
        actor_role: str,
        at: datetime,
        *,
        referral_id: int,
    ) -> None:
        write_audit(
            self.audit_repo,
            session,
            schema=AUDIT_SCHEMA,
            entity_type="vehicle",
            entity_id=int(vehicle.id),
            action="status",
            actor_id=actor_id,
            actor_role=actor_role,
            at=at,
            status_from=VehicleStatus.AVAILABLE.value,
            status_to=str(vehicle.status),
            changes={"referral_id": referral_id},
        )
