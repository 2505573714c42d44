from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from alembic.util.exc import CommandError

from cholera_triage.bootstrap import startup


def test_check_startup_prerequisites_handles_write_error(
    tmp_path: Path,
    monkeypatch,
) -> None:
    db_file = tmp_path / "data" / "triage.db"
    db_file.parent.mkdir(parents=True, exist_ok=True)

    original_write_text = Path.write_text

    def _failing_write(self: Path, data: str, encoding: str = "utf-8", errors: str | None = None) -> int:
        if self.name == ".write_test":
            raise OSError("permission denied")
        kwargs = {"encoding": encoding}
        if errors is not None:
            kwargs["errors"] = errors
        return original_write_text(self, data, **kwargs)

    monkeypatch.setattr(Path, "write_text", _failing_write)

    assert startup.check_startup_prerequisites(db_file) is False


def test_check_startup_prerequisites_creates_data_dir(tmp_path: Path) -> None:
    db_file = tmp_path / "nested" / "triage.db"

    assert startup.check_startup_prerequisites(db_file) is True
    assert db_file.parent.is_dir()
    assert not (db_file.parent / ".write_test").exists()


def test_run_migrations_writes_error_log_when_upgrade_fails(
    tmp_path: Path,
    monkeypatch,
) -> None:
    db_file = tmp_path / "triage.db"
    log_dir = tmp_path / "logs"

    def _raise_upgrade(_cfg, _target: str) -> None:  # noqa: ANN001
        raise CommandError("boom")

    monkeypatch.setattr(startup.command, "upgrade", _raise_upgrade)

    ok = startup.run_migrations(tmp_path, "sqlite:///tmp.db", log_dir, db_file)
    assert ok is False

    error_log = log_dir / "migration_error.log"
    assert error_log.exists()
    log_text = error_log.read_text(encoding="utf-8")
    assert "Migration error" in log_text
    assert "boom" in log_text


def test_build_alembic_config_points_at_package_migrations(tmp_path: Path) -> None:
    cfg = startup.build_alembic_config(tmp_path, "sqlite:///x.db")

    assert cfg.get_main_option("script_location") == str(startup.MIGRATIONS_DIR)
    assert cfg.get_main_option("sqlalchemy.url") == "sqlite:///x.db"
    assert cfg.attributes["configure_logger"] is False


def test_seed_core_data_reports_failure_as_zero() -> None:
    def _broken_seed() -> int:
        raise RuntimeError("catalog unavailable")

    container = SimpleNamespace(symptom_catalog_service=SimpleNamespace(seed_defaults_if_empty=_broken_seed))

    assert startup.seed_core_data(container) == 0
