from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import expression

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    # avoid constraint_name token to allow unnamed CheckConstraint
    "ck": "ck_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=naming_convention)


class Base(DeclarativeBase):
    metadata = metadata


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def normalize_datetime(value: object) -> object:
    """Store datetimes as naive UTC; other values pass through unchanged."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    login = Column(String, unique=True, nullable=False)
    role = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=expression.true())
    created_at = Column(DateTime, nullable=False, default=utc_now)


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True)
    event_ts = Column(DateTime, nullable=False, default=utc_now)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    action = Column(String, nullable=False)
    payload_json = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_audit_log_event_ts", "event_ts"),
        Index("ix_audit_log_entity_type_entity_id", "entity_type", "entity_id"),
    )


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True)
    full_name = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    deleted_at = Column(DateTime, nullable=True)


class Symptom(Base):
    __tablename__ = "symptoms"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)
    severity = Column(Integer, nullable=False)
    cholera_specific = Column(Boolean, nullable=False, server_default=expression.false())
    is_active = Column(Boolean, nullable=False, server_default=expression.true())

    __table_args__ = (
        CheckConstraint("severity BETWEEN 1 AND 5", name="ck_symptoms_severity"),
        Index("ix_symptoms_category_severity", "category", "severity"),
    )


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True)
    plate = Column(String(10), nullable=False, unique=True)
    vehicle_type = Column(String, nullable=False)
    status = Column(String, nullable=False)
    patient_capacity = Column(Integer, nullable=False, default=1)
    description = Column(String(255), nullable=True)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint(
            "status in ('disponivel','em_transito','em_manutencao','indisponivel')",
            name="ck_vehicles_status",
        ),
        CheckConstraint("vehicle_type in ('ambulancia','transporte','apoio')", name="ck_vehicles_vehicle_type"),
    )


class Triage(Base):
    __tablename__ = "triages"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    facility_id = Column(Integer, nullable=True)
    care_point_id = Column(Integer, nullable=True)
    clinician_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(String, nullable=False, default="pendente")
    urgency_level = Column(String, nullable=False, default="medio")
    symptoms_json = Column(Text, nullable=False, default="[]")
    dehydration_index = Column(Float, nullable=False, default=0.0)
    temperature = Column(Float, nullable=True)
    heart_rate = Column(Integer, nullable=True)
    respiratory_rate = Column(Integer, nullable=True)
    cholera_probability = Column(Float, nullable=False, default=0.0)
    recommendations_json = Column(Text, nullable=False, default="[]")
    observations = Column(Text, nullable=True)
    referral_history_json = Column(Text, nullable=False, default="[]")
    symptom_onset_at = Column(DateTime, nullable=True)
    concluded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by = Column(String, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utc_now)
    updated_by = Column(String, nullable=False)
    version = Column(Integer, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint(
            "status in ('pendente','em_andamento','concluida','encaminhada')",
            name="ck_triages_status",
        ),
        CheckConstraint(
            "urgency_level in ('baixo','medio','alto','critico')",
            name="ck_triages_urgency_level",
        ),
        Index("ix_triages_status", "status"),
        Index("ix_triages_urgency_level", "urgency_level"),
        Index("ix_triages_patient_id_created_at", "patient_id", "created_at"),
        Index("ix_triages_cholera_probability", "cholera_probability"),
    )


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True)
    triage_id = Column(Integer, ForeignKey("triages.id"), nullable=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    origin_facility_id = Column(Integer, nullable=True)
    destination_facility_id = Column(Integer, nullable=True)
    origin_care_point_id = Column(Integer, nullable=True)
    destination_care_point_id = Column(Integer, nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)
    responsible_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(String, nullable=False, default="pendente")
    priority = Column(String, nullable=False, default="media")
    referral_type = Column(String, nullable=True)
    reason = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    required_resources_json = Column(Text, nullable=False, default="[]")
    requested_at = Column(DateTime, nullable=False, default=utc_now)
    estimated_departure = Column(DateTime, nullable=True)
    estimated_arrival = Column(DateTime, nullable=True)
    departed_at = Column(DateTime, nullable=True)
    arrived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by = Column(String, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utc_now)
    updated_by = Column(String, nullable=False)
    version = Column(Integer, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint(
            "status in ('pendente','aprovado','em_transporte','concluido','cancelado')",
            name="ck_referrals_status",
        ),
        CheckConstraint(
            "priority in ('baixa','media','alta','emergencia')",
            name="ck_referrals_priority",
        ),
        CheckConstraint(
            "NOT (origin_facility_id IS NOT NULL AND origin_care_point_id IS NOT NULL)",
            name="ck_referrals_origin_kind",
        ),
        CheckConstraint(
            "NOT (destination_facility_id IS NOT NULL AND destination_care_point_id IS NOT NULL)",
            name="ck_referrals_destination_kind",
        ),
        Index("ix_referrals_status_priority", "status", "priority"),
        Index("ix_referrals_triage_id", "triage_id"),
        Index("ix_referrals_vehicle_id", "vehicle_id"),
    )
