from __future__ import annotations

import argparse
import json
from pathlib import Path

from cholera_triage.application.services.symptom_catalog_service import DEFAULT_SEED_PATH, SymptomCatalogService
from cholera_triage.config import ensure_data_dirs


def seed(seed_path: Path) -> None:
    ensure_data_dirs()
    service = SymptomCatalogService()
    count = service.seed_defaults(seed_path)
    symptoms = [item.model_dump() for item in service.list_symptoms()]
    print(f"Seeded {count} symptoms:", json.dumps(symptoms, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Carrega o catálogo de sintomas")
    parser.add_argument("--file", type=Path, default=DEFAULT_SEED_PATH)
    seed(parser.parse_args().file)
