from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from cholera_triage.infrastructure.db.models_sqlalchemy import Symptom


class SymptomRepository:
    def get_by_id(self, session: Session, symptom_id: int) -> Symptom | None:
        return session.get(Symptom, symptom_id)

    def get_many(self, session: Session, symptom_ids: Iterable[int]) -> dict[int, Symptom]:
        ids = sorted(set(symptom_ids))
        if not ids:
            return {}
        stmt = select(Symptom).where(Symptom.id.in_(ids))
        return {int(row.id): row for row in session.execute(stmt).scalars()}

    def list_symptoms(
        self,
        session: Session,
        *,
        cholera_specific: bool | None = None,
        category: str | None = None,
        min_severity: int | None = None,
        include_inactive: bool = False,
    ) -> list[Symptom]:
        stmt = select(Symptom)
        if not include_inactive:
            stmt = stmt.where(Symptom.is_active.is_(True))
        if cholera_specific is not None:
            stmt = stmt.where(Symptom.cholera_specific.is_(cholera_specific))
        if category:
            stmt = stmt.where(Symptom.category == category)
        if min_severity is not None:
            stmt = stmt.where(Symptom.severity >= min_severity)
        stmt = stmt.order_by(Symptom.category.asc(), Symptom.severity.desc(), Symptom.name.asc())
        return list(session.execute(stmt).scalars())

    def upsert_by_name(self, session: Session, items: Iterable[dict]) -> int:
        count = 0
        for item in items:
            name = str(item.get("name") or "").strip()
            if not name:
                continue
            row = session.execute(select(Symptom).where(Symptom.name == name)).scalar_one_or_none()
            if row is None:
                row = Symptom(name=name)
                session.add(row)
            for key in ("description", "category", "severity", "cholera_specific", "is_active"):
                if key in item:
                    setattr(row, key, item[key])
            count += 1
        session.flush()
        return count

    def has_any(self, session: Session) -> bool:
        return session.execute(select(Symptom.id).limit(1)).first() is not None
