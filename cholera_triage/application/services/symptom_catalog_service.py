from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

from cholera_triage.application.dto.catalog_dto import SymptomDto, SymptomFilters
from cholera_triage.domain.errors import NotFoundError
from cholera_triage.infrastructure.db.repositories.symptom_repo import SymptomRepository
from cholera_triage.infrastructure.db.session import session_scope

DEFAULT_SEED_PATH = Path(__file__).resolve().parents[2] / "resources" / "symptom_seed.json"


class SymptomCatalogService:
    def __init__(
        self,
        repo: SymptomRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.repo = repo or SymptomRepository()
        self.session_factory = session_factory
        self._logger = logging.getLogger(__name__)

    def list_symptoms(self, filters: SymptomFilters | None = None) -> list[SymptomDto]:
        filters = filters or SymptomFilters()
        with self.session_factory() as session:
            rows = self.repo.list_symptoms(
                session,
                cholera_specific=filters.cholera_specific,
                category=filters.category,
                min_severity=filters.min_severity,
            )
            return [SymptomDto.model_validate(row) for row in rows]

    def get_symptom(self, symptom_id: int) -> SymptomDto:
        with self.session_factory() as session:
            row = self.repo.get_by_id(session, symptom_id)
            if row is None:
                raise NotFoundError("Sintoma não encontrado")
            return SymptomDto.model_validate(row)

    def seed_defaults(self, seed_path: Path | None = None) -> int:
        seed_file = seed_path or DEFAULT_SEED_PATH
        if not seed_file.exists():
            self._logger.warning("Symptom seed file not found: %s", seed_file)
            return 0
        payload = json.loads(seed_file.read_text(encoding="utf-8"))
        items = payload.get("symptoms", [])
        with self.session_factory() as session:
            count = self.repo.upsert_by_name(session, items)
        self._logger.info("Symptom seed applied: %s entries from %s", count, seed_file)
        return count

    def seed_defaults_if_empty(self, seed_path: Path | None = None) -> int:
        with self.session_factory() as session:
            if self.repo.has_any(session):
                return 0
        return self.seed_defaults(seed_path)
