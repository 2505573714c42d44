from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config

PACKAGE_DIR = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = PACKAGE_DIR / "infrastructure" / "db" / "migrations"

logger = logging.getLogger(__name__)


def build_alembic_config(root_dir: Path, database_url: str) -> Config:
    ini_path = root_dir / "alembic.ini"
    cfg = Config(str(ini_path)) if ini_path.exists() else Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", database_url)
    # Keep the handlers installed by main._setup_logging.
    cfg.attributes["configure_logger"] = False
    return cfg


def check_startup_prerequisites(db_file: Path) -> bool:
    if not MIGRATIONS_DIR.exists():
        logger.error("Migrations directory missing: %s", MIGRATIONS_DIR)
        return False
    try:
        db_file.parent.mkdir(parents=True, exist_ok=True)
        test_file = db_file.parent / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
    except OSError:
        logger.exception("Database directory is not writable: %s", db_file.parent)
        return False
    return True


def run_migrations(root_dir: Path, database_url: str, log_dir: Path, db_file: Path) -> bool:
    try:
        command.upgrade(build_alembic_config(root_dir, database_url), "head")
        return True
    except Exception:  # noqa: BLE001
        logger.exception("Failed to run migrations")
        error_path = log_dir / "migration_error.log"
        error_path.parent.mkdir(parents=True, exist_ok=True)
        with error_path.open("a", encoding="utf-8") as handle:
            handle.write("\n--- Migration error ---\n")
            handle.write(f"DB: {db_file}\n")
            handle.write(f"Migrations: {MIGRATIONS_DIR}\n")
            handle.write(traceback.format_exc())
        return False


def initialize_database(
    *,
    root_dir: Path,
    db_file: Path,
    database_url: str,
    log_dir: Path,
) -> bool:
    if not check_startup_prerequisites(db_file):
        return False
    return run_migrations(root_dir, database_url, log_dir, db_file)


def seed_core_data(container: Any) -> int:
    try:
        return container.symptom_catalog_service.seed_defaults_if_empty()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to seed symptom catalog")
        return 0
