from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from cholera_triage.application.dto.triage_dto import (
    SymptomObservationDto,
    TriageCreateRequest,
    TriageDto,
    TriageFilters,
    TriageStatusUpdateRequest,
    TriageUpdateRequest,
)
from cholera_triage.application.services.audit_support import resolve_actor, resolve_at, write_audit
from cholera_triage.domain.constants import TriageStatus
from cholera_triage.domain.errors import NotFoundError, VersionConflictError
from cholera_triage.domain.models.triage import (
    ObservedSymptom,
    RiskAssessment,
    SymptomObservation,
    SymptomProfile,
    VitalSigns,
)
from cholera_triage.domain.rules.triage_rules import (
    assess_risk,
    ensure_triage_editable,
    validate_triage_transition,
)
from cholera_triage.infrastructure.db import models_sqlalchemy as models
from cholera_triage.infrastructure.db.repositories.audit_repo import AuditLogRepository
from cholera_triage.infrastructure.db.repositories.patient_repo import PatientRepository
from cholera_triage.infrastructure.db.repositories.symptom_repo import SymptomRepository
from cholera_triage.infrastructure.db.repositories.triage_repo import TriageRepository
from cholera_triage.infrastructure.db.repositories.user_repo import UserRepository
from cholera_triage.infrastructure.db.session import session_scope

AUDIT_SCHEMA = "triage.audit.v1"

_CLINICAL_FIELDS = frozenset(
    {"symptoms", "dehydration_index", "temperature", "heart_rate", "respiratory_rate"}
)
_DESCRIPTIVE_FIELDS = ("facility_id", "care_point_id", "clinician_id", "observations", "symptom_onset_at")

logger = logging.getLogger(__name__)


def load_observed_symptoms(
    session: Session,
    symptom_repo: SymptomRepository,
    observations: Iterable[SymptomObservation],
) -> list[ObservedSymptom]:
    """Join intensities with catalog facts; unknown symptom ids are rejected."""
    items = list(observations)
    catalog = symptom_repo.get_many(session, [item.symptom_id for item in items])
    missing = sorted({item.symptom_id for item in items if item.symptom_id not in catalog})
    if missing:
        raise NotFoundError(f"Sintoma não encontrado: {', '.join(str(item) for item in missing)}")
    observed: list[ObservedSymptom] = []
    for item in items:
        row = catalog[item.symptom_id]
        profile = SymptomProfile(
            symptom_id=int(row.id),
            name=str(row.name),
            category=str(row.category),
            severity=int(row.severity),
            cholera_specific=bool(row.cholera_specific),
        )
        observed.append(ObservedSymptom(profile=profile, intensity=item.intensity))
    return observed


def _observations_from_dtos(items: Iterable[SymptomObservationDto]) -> list[SymptomObservation]:
    return [SymptomObservation(symptom_id=item.symptom_id, intensity=item.intensity) for item in items]


def _assessment_payload(assessment: RiskAssessment) -> dict[str, Any]:
    return {
        "cholera_probability": assessment.cholera_probability,
        "urgency_level": assessment.urgency_level,
        "recommendations": list(assessment.recommendations),
    }


class TriageService:
    def __init__(
        self,
        repo: TriageRepository | None = None,
        symptom_repo: SymptomRepository | None = None,
        patient_repo: PatientRepository | None = None,
        user_repo: UserRepository | None = None,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.repo = repo or TriageRepository()
        self.symptom_repo = symptom_repo or SymptomRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory

    def get_triage(self, triage_id: int) -> TriageDto:
        with self.session_factory() as session:
            row = self._require(session, triage_id)
            return TriageDto.model_validate(self.repo.to_dict(row))

    def list_triages(
        self,
        filters: TriageFilters | None = None,
        *,
        limit: int = 15,
        offset: int = 0,
    ) -> list[TriageDto]:
        filter_payload = filters.model_dump(exclude_none=True) if filters else {}
        with self.session_factory() as session:
            rows = self.repo.list_triages(session, filters=filter_payload, limit=limit, offset=offset)
            return [TriageDto.model_validate(self.repo.to_dict(row)) for row in rows]

    def list_critical(self) -> list[TriageDto]:
        with self.session_factory() as session:
            return [TriageDto.model_validate(self.repo.to_dict(row)) for row in self.repo.list_critical(session)]

    def list_by_patient(self, patient_id: int, *, limit: int = 100, offset: int = 0) -> list[TriageDto]:
        with self.session_factory() as session:
            if self.patient_repo.get_by_id(session, patient_id) is None:
                raise NotFoundError("Paciente não encontrado")
            rows = self.repo.list_triages(
                session,
                filters={"patient_id": patient_id},
                limit=limit,
                offset=offset,
            )
            return [TriageDto.model_validate(self.repo.to_dict(row)) for row in rows]

    def create_triage(
        self,
        request: TriageCreateRequest,
        actor_id: int | None,
        *,
        at: datetime | None = None,
    ) -> TriageDto:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            if self.patient_repo.get_by_id(session, request.patient_id) is None:
                raise NotFoundError("Paciente não encontrado")

            observations = _observations_from_dtos(request.symptoms)
            observed = load_observed_symptoms(session, self.symptom_repo, observations)
            vitals = VitalSigns(
                dehydration_index=request.dehydration_index,
                temperature=request.temperature,
                heart_rate=request.heart_rate,
                respiratory_rate=request.respiratory_rate,
            )
            assessment = assess_risk(observed, vitals)

            row = self.repo.create_triage(
                session,
                payload={
                    "patient_id": request.patient_id,
                    "facility_id": request.facility_id,
                    "care_point_id": request.care_point_id,
                    "clinician_id": request.clinician_id,
                    "status": TriageStatus.PENDING.value,
                    "symptom_observations": [item.to_dict() for item in observations],
                    "dehydration_index": request.dehydration_index,
                    "temperature": request.temperature,
                    "heart_rate": request.heart_rate,
                    "respiratory_rate": request.respiratory_rate,
                    "observations": request.observations,
                    "symptom_onset_at": request.symptom_onset_at,
                    "referral_history": [],
                    **_assessment_payload(assessment),
                },
                actor_login=actor_login,
            )
            after = self.repo.to_dict(row)
            write_audit(
                self.audit_repo,
                session,
                schema=AUDIT_SCHEMA,
                entity_type="triage",
                entity_id=int(row.id),
                action="create",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_to=TriageStatus.PENDING.value,
                changes={"before": {}, "after": after},
            )
            logger.info(
                "Triage %s created: probability=%.2f urgency=%s",
                row.id,
                assessment.cholera_probability,
                assessment.urgency_level,
            )
            return TriageDto.model_validate(after)

    def update_triage(
        self,
        triage_id: int,
        request: TriageUpdateRequest,
        actor_id: int | None,
        *,
        expected_version: int | None = None,
        at: datetime | None = None,
    ) -> TriageDto:
        event_at = resolve_at(at)
        supplied = request.model_fields_set
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, triage_id)
            before = self.repo.to_dict(row)

            payload: dict[str, Any] = {field: getattr(request, field) for field in _DESCRIPTIVE_FIELDS if field in supplied}
            if supplied & _CLINICAL_FIELDS:
                ensure_triage_editable(str(row.status))
                if "symptoms" in supplied:
                    observations = _observations_from_dtos(request.symptoms or [])
                else:
                    observations = [SymptomObservation.from_dict(item) for item in before["symptom_observations"]]
                vitals = VitalSigns(
                    dehydration_index=(
                        float(request.dehydration_index or 0.0)
                        if "dehydration_index" in supplied
                        else float(row.dehydration_index or 0.0)
                    ),
                    temperature=request.temperature if "temperature" in supplied else row.temperature,
                    heart_rate=request.heart_rate if "heart_rate" in supplied else row.heart_rate,
                    respiratory_rate=(
                        request.respiratory_rate if "respiratory_rate" in supplied else row.respiratory_rate
                    ),
                )
                observed = load_observed_symptoms(session, self.symptom_repo, observations)
                assessment = assess_risk(observed, vitals)
                payload.update(
                    {
                        "symptom_observations": [item.to_dict() for item in observations],
                        "dehydration_index": vitals.dehydration_index,
                        "temperature": vitals.temperature,
                        "heart_rate": vitals.heart_rate,
                        "respiratory_rate": vitals.respiratory_rate,
                        **_assessment_payload(assessment),
                    }
                )

            row = self._save(
                session,
                row,
                payload=payload,
                actor_login=actor_login,
                expected_version=expected_version,
            )
            after = self.repo.to_dict(row)
            write_audit(
                self.audit_repo,
                session,
                schema=AUDIT_SCHEMA,
                entity_type="triage",
                entity_id=triage_id,
                action="update",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=str(before["status"]),
                status_to=str(after["status"]),
                changes=_diff(before, after),
            )
            return TriageDto.model_validate(after)

    def update_status(
        self,
        triage_id: int,
        request: TriageStatusUpdateRequest,
        actor_id: int | None,
        *,
        expected_version: int | None = None,
        at: datetime | None = None,
    ) -> TriageDto:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, triage_id)
            current = str(row.status)
            validate_triage_transition(current, request.status)
            if current == request.status:
                return TriageDto.model_validate(self.repo.to_dict(row))

            payload: dict[str, Any] = {"status": request.status}
            if request.status == TriageStatus.CONCLUDED and row.concluded_at is None:
                payload["concluded_at"] = request.concluded_at or event_at
            row = self._save(
                session,
                row,
                payload=payload,
                actor_login=actor_login,
                expected_version=expected_version,
            )
            write_audit(
                self.audit_repo,
                session,
                schema=AUDIT_SCHEMA,
                entity_type="triage",
                entity_id=triage_id,
                action="status",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=current,
                status_to=request.status,
            )
            logger.info("Triage %s status %s -> %s", triage_id, current, request.status)
            return TriageDto.model_validate(self.repo.to_dict(row))

    def delete_triage(self, triage_id: int, actor_id: int | None, *, at: datetime | None = None) -> None:
        event_at = resolve_at(at)
        with self.session_factory() as session:
            actor_login, actor_role = resolve_actor(session, self.user_repo, actor_id)
            row = self._require(session, triage_id)
            try:
                self.repo.soft_delete(session, row, actor_login=actor_login)
            except StaleDataError as exc:
                raise VersionConflictError("Conflito de versão da triagem: registo alterado por outro utilizador") from exc
            write_audit(
                self.audit_repo,
                session,
                schema=AUDIT_SCHEMA,
                entity_type="triage",
                entity_id=triage_id,
                action="delete",
                actor_id=actor_id,
                actor_role=actor_role,
                at=event_at,
                status_from=str(row.status),
            )

    def _require(self, session: Session, triage_id: int) -> models.Triage:
        row = self.repo.get_triage(session, triage_id)
        if row is None:
            raise NotFoundError("Triagem não encontrada")
        return row

    def _save(
        self,
        session: Session,
        row: models.Triage,
        *,
        payload: dict[str, Any],
        actor_login: str,
        expected_version: int | None,
    ) -> models.Triage:
        try:
            return self.repo.update_triage(
                session,
                row,
                payload=payload,
                actor_login=actor_login,
                expected_version=expected_version,
            )
        except StaleDataError as exc:
            raise VersionConflictError("Conflito de versão da triagem: registo alterado por outro utilizador") from exc


def _diff(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    changed = {
        key: {"before": before.get(key), "after": value}
        for key, value in after.items()
        if key not in {"updated_at", "version"} and before.get(key) != value
    }
    return changed
