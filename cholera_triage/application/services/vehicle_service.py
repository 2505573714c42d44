from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.exc import IntegrityError

from cholera_triage.application.dto.catalog_dto import VehicleCreateRequest, VehicleDto
from cholera_triage.domain.constants import VehicleStatus
from cholera_triage.domain.errors import NotFoundError, ValidationError
from cholera_triage.infrastructure.db.repositories.vehicle_repo import VehicleRepository
from cholera_triage.infrastructure.db.session import session_scope


class VehicleService:
    def __init__(
        self,
        repo: VehicleRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.repo = repo or VehicleRepository()
        self.session_factory = session_factory

    def register_vehicle(self, request: VehicleCreateRequest) -> VehicleDto:
        plate = request.plate.upper()
        with self.session_factory() as session:
            try:
                vehicle = self.repo.create(
                    session,
                    plate=plate,
                    vehicle_type=request.vehicle_type,
                    status=request.status,
                    patient_capacity=request.patient_capacity,
                    description=request.description,
                )
            except IntegrityError as exc:
                raise ValidationError(f"Já existe um veículo com a matrícula {plate}") from exc
            return VehicleDto.model_validate(vehicle)

    def get_vehicle(self, vehicle_id: int) -> VehicleDto:
        with self.session_factory() as session:
            vehicle = self.repo.get_by_id(session, vehicle_id)
            if vehicle is None:
                raise NotFoundError("Veículo não encontrado")
            return VehicleDto.model_validate(vehicle)

    def list_available(self) -> list[VehicleDto]:
        with self.session_factory() as session:
            rows = self.repo.list_by_status(session, VehicleStatus.AVAILABLE.value)
            return [VehicleDto.model_validate(row) for row in rows]
