from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from cholera_triage.application.services.patient_service import PatientService
from cholera_triage.application.services.referral_service import ReferralService
from cholera_triage.application.services.symptom_catalog_service import SymptomCatalogService
from cholera_triage.application.services.triage_service import TriageService
from cholera_triage.application.services.vehicle_service import VehicleService
from cholera_triage.infrastructure.db.repositories.audit_repo import AuditLogRepository
from cholera_triage.infrastructure.db.repositories.patient_repo import PatientRepository
from cholera_triage.infrastructure.db.repositories.referral_repo import ReferralRepository
from cholera_triage.infrastructure.db.repositories.symptom_repo import SymptomRepository
from cholera_triage.infrastructure.db.repositories.triage_repo import TriageRepository
from cholera_triage.infrastructure.db.repositories.user_repo import UserRepository
from cholera_triage.infrastructure.db.repositories.vehicle_repo import VehicleRepository
from cholera_triage.infrastructure.db.session import session_scope


@dataclass
class Container:
    user_repo: UserRepository
    audit_repo: AuditLogRepository
    patient_repo: PatientRepository
    symptom_repo: SymptomRepository
    vehicle_repo: VehicleRepository
    triage_repo: TriageRepository
    referral_repo: ReferralRepository

    patient_service: PatientService
    symptom_catalog_service: SymptomCatalogService
    vehicle_service: VehicleService
    triage_service: TriageService
    referral_service: ReferralService


def build_container(session_factory: Callable = session_scope) -> Container:
    user_repo = UserRepository()
    audit_repo = AuditLogRepository()
    patient_repo = PatientRepository()
    symptom_repo = SymptomRepository()
    vehicle_repo = VehicleRepository()
    triage_repo = TriageRepository()
    referral_repo = ReferralRepository()

    patient_service = PatientService(patient_repo=patient_repo, session_factory=session_factory)
    symptom_catalog_service = SymptomCatalogService(repo=symptom_repo, session_factory=session_factory)
    vehicle_service = VehicleService(repo=vehicle_repo, session_factory=session_factory)
    triage_service = TriageService(
        repo=triage_repo,
        symptom_repo=symptom_repo,
        patient_repo=patient_repo,
        user_repo=user_repo,
        audit_repo=audit_repo,
        session_factory=session_factory,
    )
    referral_service = ReferralService(
        repo=referral_repo,
        triage_repo=triage_repo,
        vehicle_repo=vehicle_repo,
        patient_repo=patient_repo,
        user_repo=user_repo,
        audit_repo=audit_repo,
        session_factory=session_factory,
    )

    return Container(
        user_repo=user_repo,
        audit_repo=audit_repo,
        patient_repo=patient_repo,
        symptom_repo=symptom_repo,
        vehicle_repo=vehicle_repo,
        triage_repo=triage_repo,
        referral_repo=referral_repo,
        patient_service=patient_service,
        symptom_catalog_service=symptom_catalog_service,
        vehicle_service=vehicle_service,
        triage_service=triage_service,
        referral_service=referral_service,
    )
