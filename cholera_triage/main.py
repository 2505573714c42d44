from __future__ import annotations

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cholera_triage.bootstrap.startup import initialize_database, seed_core_data
from cholera_triage.config import DB_FILE, LOG_DIR, ensure_data_dirs, settings
from cholera_triage.container import build_container

ROOT_DIR = Path(__file__).resolve().parent.parent


def _setup_logging(verbose: bool = False) -> Path:
    log_path = LOG_DIR / "app.log"
    handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    root_logger.addHandler(handler)
    if verbose:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root_logger.addHandler(console)
    return log_path


def _install_exception_hook(log_path: Path) -> None:
    def _handle_exception(exc_type, exc, tb) -> None:
        logging.getLogger(__name__).error("Unhandled exception", exc_info=(exc_type, exc, tb))
        print(f"Erro inesperado. Relatório: {log_path}", file=sys.stderr)
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _handle_exception


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cholera-triage", description="Triagem de cólera e encaminhamentos")
    parser.add_argument("-v", "--verbose", action="store_true", help="log também para a consola")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("init", help="aplica migrações e carrega o catálogo de sintomas")
    sub.add_parser("migrate", help="aplica migrações da base de dados")
    sub.add_parser("seed", help="carrega/atualiza o catálogo de sintomas")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    command = args.command or "init"

    ensure_data_dirs()
    log_path = _setup_logging(args.verbose)
    _install_exception_hook(log_path)

    if command in {"init", "migrate"}:
        if not initialize_database(
            root_dir=ROOT_DIR,
            db_file=DB_FILE,
            database_url=settings.database_url,
            log_dir=LOG_DIR,
        ):
            print(f"Falha ao preparar a base de dados. Detalhes: {LOG_DIR / 'migration_error.log'}", file=sys.stderr)
            return 1

    container = build_container()
    if command == "seed":
        count = container.symptom_catalog_service.seed_defaults()
        print(f"Sintomas carregados: {count}")
    elif command == "init" and settings.seed_symptoms_on_start:
        count = seed_core_data(container)
        print(f"Base de dados pronta ({settings.database_url}); sintomas carregados: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
