from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from cholera_triage.infrastructure.db.models_sqlalchemy import Vehicle


class VehicleRepository:
    def get_by_id(self, session: Session, vehicle_id: int) -> Vehicle | None:
        stmt = select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.deleted_at.is_(None))
        return session.execute(stmt).scalar_one_or_none()

    def create(
        self,
        session: Session,
        *,
        plate: str,
        vehicle_type: str,
        status: str,
        patient_capacity: int,
        description: str | None = None,
    ) -> Vehicle:
        vehicle = Vehicle(
            plate=plate,
            vehicle_type=vehicle_type,
            status=status,
            patient_capacity=patient_capacity,
            description=description,
        )
        session.add(vehicle)
        session.flush()
        return vehicle

    def list_by_status(self, session: Session, status: str) -> list[Vehicle]:
        stmt = (
            select(Vehicle)
            .where(Vehicle.status == status, Vehicle.deleted_at.is_(None))
            .order_by(Vehicle.plate.asc())
        )
        return list(session.execute(stmt).scalars())
