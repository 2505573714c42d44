from __future__ import annotations

import threading
from datetime import datetime

import pytest

from cholera_triage.application.dto.referral_dto import ReferralCreateRequest, VehicleAssignmentRequest
from cholera_triage.application.services.referral_service import ReferralService
from cholera_triage.domain.errors import ResourceConflictError
from cholera_triage.infrastructure.db import models_sqlalchemy as models
from cholera_triage.infrastructure.db.repositories.vehicle_repo import VehicleRepository

AT = datetime(2025, 6, 20, 9, 30)


def _pending_referral(service: ReferralService, patient_id: int) -> int:
    referral = service.create_referral(
        ReferralCreateRequest(
            patient_id=patient_id,
            origin_facility_id=1,
            destination_facility_id=2,
            reason="Transferência para CTC",
        ),
        actor_id=None,
        at=AT,
    )
    return referral.id


def test_concurrent_assignments_of_one_vehicle_have_a_single_winner(session_factory, clinic) -> None:
    setup = ReferralService(session_factory=session_factory)
    referral_ids = [
        _pending_referral(setup, clinic.patient_id),
        _pending_referral(setup, clinic.other_patient_id),
    ]
    barrier = threading.Barrier(len(referral_ids))
    outcomes: dict[int, object] = {}

    def _assign(referral_id: int) -> None:
        service = ReferralService(session_factory=session_factory)
        barrier.wait()
        try:
            outcomes[referral_id] = service.assign_vehicle(
                referral_id,
                VehicleAssignmentRequest(vehicle_id=clinic.ambulance_id),
                actor_id=None,
            )
        except ResourceConflictError as exc:
            outcomes[referral_id] = exc

    threads = [threading.Thread(target=_assign, args=(referral_id,)) for referral_id in referral_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert len(outcomes) == 2
    winners = [rid for rid, outcome in outcomes.items() if not isinstance(outcome, Exception)]
    losers = [rid for rid, outcome in outcomes.items() if isinstance(outcome, ResourceConflictError)]
    assert len(winners) == 1
    assert len(losers) == 1

    assert setup.get_referral(winners[0]).status == "aprovado"
    loser = setup.get_referral(losers[0])
    assert loser.status == "pendente"
    assert loser.vehicle_id is None
    with session_factory() as session:
        vehicle = session.get(models.Vehicle, clinic.ambulance_id)
        assert vehicle.status == "em_transito"
        assert vehicle.version == 2


class _RacingVehicleRepository(VehicleRepository):
    """Commits a rival dispatch right after the service has read the vehicle."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    def get_by_id(self, session, vehicle_id):
        vehicle = super().get_by_id(session, vehicle_id)
        with self._session_factory() as rival:
            rival.get(models.Vehicle, vehicle_id).status = "em_transito"
        return vehicle


def test_stale_vehicle_read_is_reported_as_resource_conflict(session_factory, clinic) -> None:
    setup = ReferralService(session_factory=session_factory)
    referral_id = _pending_referral(setup, clinic.patient_id)
    racing = ReferralService(
        vehicle_repo=_RacingVehicleRepository(session_factory),
        session_factory=session_factory,
    )

    with pytest.raises(ResourceConflictError, match="outro encaminhamento"):
        racing.assign_vehicle(referral_id, VehicleAssignmentRequest(vehicle_id=clinic.ambulance_id), actor_id=None)

    referral = setup.get_referral(referral_id)
    assert referral.status == "pendente"
    assert referral.vehicle_id is None
