"""Initial triage, referral and fleet schema"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("login", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.UniqueConstraint("login", name="uq_users_login"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_ts", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "symptoms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("severity", sa.Integer(), nullable=False),
        sa.Column("cholera_specific", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("severity BETWEEN 1 AND 5", name="ck_symptoms_severity"),
        sa.UniqueConstraint("name", name="uq_symptoms_name"),
    )

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("plate", sa.String(length=10), nullable=False),
        sa.Column("vehicle_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("patient_capacity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status in ('disponivel','em_transito','em_manutencao','indisponivel')",
            name="ck_vehicles_status",
        ),
        sa.CheckConstraint("vehicle_type in ('ambulancia','transporte','apoio')", name="ck_vehicles_vehicle_type"),
        sa.UniqueConstraint("plate", name="uq_vehicles_plate"),
    )

    op.create_table(
        "triages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("facility_id", sa.Integer(), nullable=True),
        sa.Column("care_point_id", sa.Integer(), nullable=True),
        sa.Column("clinician_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("urgency_level", sa.String(), nullable=False),
        sa.Column("symptoms_json", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("dehydration_index", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("heart_rate", sa.Integer(), nullable=True),
        sa.Column("respiratory_rate", sa.Integer(), nullable=True),
        sa.Column("cholera_probability", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("recommendations_json", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("referral_history_json", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("symptom_onset_at", sa.DateTime(), nullable=True),
        sa.Column("concluded_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status in ('pendente','em_andamento','concluida','encaminhada')",
            name="ck_triages_status",
        ),
        sa.CheckConstraint(
            "urgency_level in ('baixo','medio','alto','critico')",
            name="ck_triages_urgency_level",
        ),
    )
    op.create_index("ix_triages_status", "triages", ["status"], unique=False)
    op.create_index("ix_triages_urgency_level", "triages", ["urgency_level"], unique=False)
    op.create_index("ix_triages_patient_id_created_at", "triages", ["patient_id", "created_at"], unique=False)
    op.create_index("ix_triages_cholera_probability", "triages", ["cholera_probability"], unique=False)

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("triage_id", sa.Integer(), sa.ForeignKey("triages.id"), nullable=True),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("origin_facility_id", sa.Integer(), nullable=True),
        sa.Column("destination_facility_id", sa.Integer(), nullable=True),
        sa.Column("origin_care_point_id", sa.Integer(), nullable=True),
        sa.Column("destination_care_point_id", sa.Integer(), nullable=True),
        sa.Column("vehicle_id", sa.Integer(), sa.ForeignKey("vehicles.id"), nullable=True),
        sa.Column("responsible_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("priority", sa.String(), nullable=False),
        sa.Column("referral_type", sa.String(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("required_resources_json", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("estimated_departure", sa.DateTime(), nullable=True),
        sa.Column("estimated_arrival", sa.DateTime(), nullable=True),
        sa.Column("departed_at", sa.DateTime(), nullable=True),
        sa.Column("arrived_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status in ('pendente','aprovado','em_transporte','concluido','cancelado')",
            name="ck_referrals_status",
        ),
        sa.CheckConstraint(
            "priority in ('baixa','media','alta','emergencia')",
            name="ck_referrals_priority",
        ),
        sa.CheckConstraint(
            "NOT (origin_facility_id IS NOT NULL AND origin_care_point_id IS NOT NULL)",
            name="ck_referrals_origin_kind",
        ),
        sa.CheckConstraint(
            "NOT (destination_facility_id IS NOT NULL AND destination_care_point_id IS NOT NULL)",
            name="ck_referrals_destination_kind",
        ),
    )
    op.create_index("ix_referrals_status_priority", "referrals", ["status", "priority"], unique=False)
    op.create_index("ix_referrals_triage_id", "referrals", ["triage_id"], unique=False)
    op.create_index("ix_referrals_vehicle_id", "referrals", ["vehicle_id"], unique=False)

    op.create_index("ix_audit_log_event_ts", "audit_log", ["event_ts"], unique=False)
    op.create_index("ix_audit_log_entity_type_entity_id", "audit_log", ["entity_type", "entity_id"], unique=False)
    op.create_index("ix_symptoms_category_severity", "symptoms", ["category", "severity"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_symptoms_category_severity", table_name="symptoms")
    op.drop_index("ix_audit_log_entity_type_entity_id", table_name="audit_log")
    op.drop_index("ix_audit_log_event_ts", table_name="audit_log")
    op.drop_index("ix_referrals_vehicle_id", table_name="referrals")
    op.drop_index("ix_referrals_triage_id", table_name="referrals")
    op.drop_index("ix_referrals_status_priority", table_name="referrals")
    op.drop_table("referrals")
    op.drop_index("ix_triages_cholera_probability", table_name="triages")
    op.drop_index("ix_triages_patient_id_created_at", table_name="triages")
    op.drop_index("ix_triages_urgency_level", table_name="triages")
    op.drop_index("ix_triages_status", table_name="triages")
    op.drop_table("triages")
    op.drop_table("vehicles")
    op.drop_table("symptoms")
    op.drop_table("patients")
    op.drop_table("audit_log")
    op.drop_table("users")
