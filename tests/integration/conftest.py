from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest

from cholera_triage.container import Container, build_container
from cholera_triage.infrastructure.db import models_sqlalchemy as models
from cholera_triage.infrastructure.db.engine import get_engine
from cholera_triage.infrastructure.db.models_sqlalchemy import Base
from cholera_triage.infrastructure.db.session import SessionFactory, make_session_scope


def make_session_factory(db_path: Path) -> SessionFactory:
    engine = get_engine(f"sqlite:///{db_path.as_posix()}")
    Base.metadata.create_all(engine)
    return make_session_scope(engine)


@dataclass
class ClinicData:
    clinician_id: int
    patient_id: int
    other_patient_id: int
    diarrhoea_id: int
    vomiting_id: int
    abdominal_pain_id: int
    ambulance_id: int
    spare_ambulance_id: int


@pytest.fixture
def session_factory(tmp_path: Path) -> SessionFactory:
    return make_session_factory(tmp_path / "triage.db")


@pytest.fixture
def container(session_factory: SessionFactory) -> Container:
    return build_container(session_factory)


@pytest.fixture
def clinic(session_factory: SessionFactory) -> ClinicData:
    with session_factory() as session:
        clinician = models.User(login="enf.ana", role="clinician")
        patient = models.Patient(full_name="João Mabunda")
        other_patient = models.Patient(full_name="Maria Cossa")
        diarrhoea = models.Symptom(name="Diarreia aquosa", category="gastrointestinal", severity=5, cholera_specific=True)
        vomiting = models.Symptom(name="Vómitos intensos", category="gastrointestinal", severity=4, cholera_specific=True)
        pain = models.Symptom(name="Dor abdominal", category="gastrointestinal", severity=2, cholera_specific=False)
        ambulance = models.Vehicle(plate="AMB-001", vehicle_type="ambulancia", status="disponivel", patient_capacity=2)
        spare = models.Vehicle(plate="AMB-002", vehicle_type="ambulancia", status="disponivel", patient_capacity=1)
        session.add_all([clinician, patient, other_patient, diarrhoea, vomiting, pain, ambulance, spare])
        session.flush()
        return ClinicData(
            clinician_id=int(clinician.id),
            patient_id=int(patient.id),
            other_patient_id=int(other_patient.id),
            diarrhoea_id=int(diarrhoea.id),
            vomiting_id=int(vomiting.id),
            abdominal_pain_id=int(pain.id),
            ambulance_id=int(ambulance.id),
            spare_ambulance_id=int(spare.id),
        )
