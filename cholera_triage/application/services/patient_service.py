from __future__ import annotations

from collections.abc import Callable

from cholera_triage.application.dto.catalog_dto import PatientCreateRequest, PatientDto
from cholera_triage.domain.errors import NotFoundError
from cholera_triage.infrastructure.db.repositories.patient_repo import PatientRepository
from cholera_triage.infrastructure.db.session import session_scope


class PatientService:
    def __init__(
        self,
        patient_repo: PatientRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.patient_repo = patient_repo or PatientRepository()
        self.session_factory = session_factory

    def register_patient(self, request: PatientCreateRequest) -> PatientDto:
        with self.session_factory() as session:
            patient = self.patient_repo.create(session, full_name=request.full_name)
            return PatientDto.model_validate(patient)

    def get_patient(self, patient_id: int) -> PatientDto:
        with self.session_factory() as session:
            patient = self.patient_repo.get_by_id(session, patient_id)
            if patient is None:
                raise NotFoundError("Paciente não encontrado")
            return PatientDto.model_validate(patient)
