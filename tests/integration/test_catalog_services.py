from __future__ import annotations

import json
from pathlib import Path

import pytest

from cholera_triage.application.dto.catalog_dto import (
    PatientCreateRequest,
    SymptomFilters,
    VehicleCreateRequest,
)
from cholera_triage.application.services.patient_service import PatientService
from cholera_triage.application.services.symptom_catalog_service import SymptomCatalogService
from cholera_triage.application.services.vehicle_service import VehicleService
from cholera_triage.bootstrap.startup import seed_core_data
from cholera_triage.domain.errors import NotFoundError, ValidationError


def test_default_seed_loads_catalog_once(container) -> None:
    service = container.symptom_catalog_service

    loaded = seed_core_data(container)
    assert loaded > 0
    assert service.seed_defaults_if_empty() == 0

    symptoms = service.list_symptoms()
    assert len(symptoms) == loaded
    names = {item.name for item in symptoms}
    assert {"Diarreia aquosa", "Vómitos intensos", "Sede extrema"} <= names


def test_catalog_filters_and_ordering(session_factory, tmp_path: Path) -> None:
    seed_file = tmp_path / "seed.json"
    seed_file.write_text(
        json.dumps(
            {
                "symptoms": [
                    {"name": "Sede extrema", "category": "desidratacao", "severity": 3, "cholera_specific": False},
                    {"name": "Diarreia aquosa", "category": "gastrointestinal", "severity": 5, "cholera_specific": True},
                    {"name": "Dor abdominal", "category": "gastrointestinal", "severity": 2, "cholera_specific": False},
                    {"name": "Olhos encovados", "category": "desidratacao", "severity": 4, "cholera_specific": False},
                ]
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    service = SymptomCatalogService(session_factory=session_factory)
    assert service.seed_defaults(seed_file) == 4

    ordered = [item.name for item in service.list_symptoms()]
    assert ordered == ["Olhos encovados", "Sede extrema", "Diarreia aquosa", "Dor abdominal"]

    specific = service.list_symptoms(SymptomFilters(cholera_specific=True))
    assert [item.name for item in specific] == ["Diarreia aquosa"]

    severe = service.list_symptoms(SymptomFilters(min_severity=4))
    assert {item.name for item in severe} == {"Olhos encovados", "Diarreia aquosa"}

    dehydration = service.list_symptoms(SymptomFilters(category="desidratacao"))
    assert [item.name for item in dehydration] == ["Olhos encovados", "Sede extrema"]


def test_reseeding_updates_by_name(session_factory, tmp_path: Path) -> None:
    seed_file = tmp_path / "seed.json"
    service = SymptomCatalogService(session_factory=session_factory)

    seed_file.write_text(
        json.dumps({"symptoms": [{"name": "Febre", "category": "geral", "severity": 1, "cholera_specific": False}]}),
        encoding="utf-8",
    )
    service.seed_defaults(seed_file)
    seed_file.write_text(
        json.dumps({"symptoms": [{"name": "Febre", "category": "geral", "severity": 2, "cholera_specific": False}]}),
        encoding="utf-8",
    )
    service.seed_defaults(seed_file)

    symptoms = service.list_symptoms()
    assert len(symptoms) == 1
    assert symptoms[0].severity == 2
    assert service.get_symptom(symptoms[0].id).name == "Febre"
    with pytest.raises(NotFoundError):
        service.get_symptom(999)


def test_missing_seed_file_is_skipped(session_factory, tmp_path: Path) -> None:
    service = SymptomCatalogService(session_factory=session_factory)
    assert service.seed_defaults(tmp_path / "absent.json") == 0
    assert service.list_symptoms() == []


def test_vehicle_registry(session_factory) -> None:
    service = VehicleService(session_factory=session_factory)
    ambulance = service.register_vehicle(VehicleCreateRequest(plate="amb-010", patient_capacity=2))
    service.register_vehicle(VehicleCreateRequest(plate="TRP-001", vehicle_type="transporte", status="em_manutencao"))

    assert ambulance.plate == "AMB-010"
    assert ambulance.status == "disponivel"
    assert ambulance.version == 1
    assert [item.plate for item in service.list_available()] == ["AMB-010"]
    assert service.get_vehicle(ambulance.id).patient_capacity == 2

    with pytest.raises(ValidationError, match="AMB-010"):
        service.register_vehicle(VehicleCreateRequest(plate="AMB-010"))
    with pytest.raises(NotFoundError):
        service.get_vehicle(404)


def test_patient_registry(session_factory) -> None:
    service = PatientService(session_factory=session_factory)
    patient = service.register_patient(PatientCreateRequest(full_name="  Ana Sitoe  "))

    assert patient.full_name == "Ana Sitoe"
    assert service.get_patient(patient.id).full_name == "Ana Sitoe"
    with pytest.raises(NotFoundError):
        service.get_patient(patient.id + 100)
