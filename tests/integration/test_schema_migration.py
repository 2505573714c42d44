from __future__ import annotations

from pathlib import Path

from alembic import command
from sqlalchemy import create_engine, inspect

from cholera_triage.bootstrap.startup import build_alembic_config, initialize_database

ROOT_DIR = Path(__file__).resolve().parents[2]

EXPECTED_TABLES = {"users", "audit_log", "patients", "symptoms", "vehicles", "triages", "referrals"}


def test_initial_migration_creates_and_drops_schema(tmp_path: Path) -> None:
    db_path = tmp_path / "migrated.db"
    database_url = f"sqlite:///{db_path.as_posix()}"

    assert initialize_database(
        root_dir=ROOT_DIR,
        db_file=db_path,
        database_url=database_url,
        log_dir=tmp_path / "logs",
    )

    engine = create_engine(database_url, future=True)
    inspector = inspect(engine)
    assert EXPECTED_TABLES <= set(inspector.get_table_names())
    referral_columns = {col["name"] for col in inspector.get_columns("referrals")}
    assert {"version", "deleted_at", "referral_type", "required_resources_json"} <= referral_columns
    engine.dispose()

    command.downgrade(build_alembic_config(ROOT_DIR, database_url), "base")
    engine = create_engine(database_url, future=True)
    assert EXPECTED_TABLES.isdisjoint(inspect(engine).get_table_names())
    engine.dispose()
