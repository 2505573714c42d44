from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from cholera_triage.infrastructure.db.models_sqlalchemy import Patient


class PatientRepository:
    def get_by_id(self, session: Session, patient_id: int) -> Patient | None:
        stmt = select(Patient).where(Patient.id == patient_id, Patient.deleted_at.is_(None))
        return session.execute(stmt).scalar_one_or_none()

    def create(self, session: Session, *, full_name: str) -> Patient:
        patient = Patient(full_name=full_name)
        session.add(patient)
        session.flush()
        return patient
