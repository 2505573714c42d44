from __future__ import annotations

from datetime import datetime

from cholera_triage.domain.constants import (
    ReferralPriority,
    ReferralStatus,
    ReferralType,
    UrgencyLevel,
    VehicleStatus,
)
from cholera_triage.domain.errors import (
    InvalidTransitionError,
    ResourceConflictError,
    TerminalStateError,
    ValidationError,
)

REFERRAL_TRANSITIONS: dict[str, frozenset[str]] = {
    ReferralStatus.PENDING: frozenset({ReferralStatus.APPROVED, ReferralStatus.CANCELLED}),
    ReferralStatus.APPROVED: frozenset({ReferralStatus.IN_TRANSPORT, ReferralStatus.CANCELLED}),
    ReferralStatus.IN_TRANSPORT: frozenset({ReferralStatus.COMPLETED, ReferralStatus.CANCELLED}),
    ReferralStatus.COMPLETED: frozenset(),
    ReferralStatus.CANCELLED: frozenset(),
}

TERMINAL_REFERRAL_STATUSES = frozenset({ReferralStatus.COMPLETED, ReferralStatus.CANCELLED})
ACTIVE_REFERRAL_STATUSES = frozenset(
    {ReferralStatus.PENDING, ReferralStatus.APPROVED, ReferralStatus.IN_TRANSPORT}
)
VEHICLE_ASSIGNABLE_STATUSES = frozenset({ReferralStatus.PENDING, ReferralStatus.APPROVED})

_REFERRAL_TYPES: dict[tuple[str, str], ReferralType] = {
    ("facility", "facility"): ReferralType.FACILITY_TO_FACILITY,
    ("facility", "care_point"): ReferralType.FACILITY_TO_CARE_POINT,
    ("care_point", "facility"): ReferralType.CARE_POINT_TO_FACILITY,
    ("care_point", "care_point"): ReferralType.CARE_POINT_TO_CARE_POINT,
}

_PRIORITY_BY_URGENCY: dict[str, ReferralPriority] = {
    UrgencyLevel.LOW: ReferralPriority.LOW,
    UrgencyLevel.MEDIUM: ReferralPriority.MEDIUM,
    UrgencyLevel.HIGH: ReferralPriority.HIGH,
    UrgencyLevel.CRITICAL: ReferralPriority.EMERGENCY,
}


def is_terminal_referral(status: str) -> bool:
    return status in TERMINAL_REFERRAL_STATUSES


def validate_referral_transition(from_status: str, to_status: str) -> None:
    if to_status not in REFERRAL_TRANSITIONS:
        raise InvalidTransitionError(f"Status de encaminhamento desconhecido: '{to_status}'")
    if from_status == to_status:
        return
    if is_terminal_referral(from_status):
        raise TerminalStateError(f"Encaminhamento com status '{from_status}' não pode mudar de status")
    if to_status not in REFERRAL_TRANSITIONS[from_status]:
        raise InvalidTransitionError(f"Transição inválida de status: de '{from_status}' para '{to_status}'")


def ensure_referral_editable(status: str) -> None:
    if status == ReferralStatus.COMPLETED:
        raise TerminalStateError("Não é possível atualizar um encaminhamento que já foi concluído")
    if status == ReferralStatus.CANCELLED:
        raise TerminalStateError("Não é possível atualizar um encaminhamento que já foi cancelado")


def _leg_kind(facility_id: int | None, care_point_id: int | None, *, leg: str) -> str | None:
    if facility_id is not None and care_point_id is not None:
        raise ValidationError(f"O {leg} deve ser uma unidade de saúde ou um ponto de cuidado, não ambos")
    if facility_id is not None:
        return "facility"
    if care_point_id is not None:
        return "care_point"
    return None


def derive_referral_type(
    origin_facility_id: int | None,
    destination_facility_id: int | None,
    origin_care_point_id: int | None,
    destination_care_point_id: int | None,
) -> ReferralType | None:
    origin = _leg_kind(origin_facility_id, origin_care_point_id, leg="local de origem")
    destination = _leg_kind(destination_facility_id, destination_care_point_id, leg="local de destino")
    if origin is None or destination is None:
        return None
    return _REFERRAL_TYPES[(origin, destination)]


def priority_for_urgency(urgency_level: str) -> ReferralPriority:
    return _PRIORITY_BY_URGENCY.get(urgency_level, ReferralPriority.MEDIUM)


def ensure_vehicle_assignable(
    referral_status: str,
    vehicle_status: str,
    *,
    vehicle_id: int,
    assigned_vehicle_id: int | None = None,
) -> None:
    if referral_status not in VEHICLE_ASSIGNABLE_STATUSES:
        raise InvalidTransitionError(
            "Somente encaminhamentos pendentes ou aprovados podem receber atribuição de veículo"
        )
    # A dispatched vehicle is only released by fleet operations.
    if assigned_vehicle_id is not None:
        raise InvalidTransitionError(f"O encaminhamento já tem o veículo #{assigned_vehicle_id} atribuído")
    if vehicle_status != VehicleStatus.AVAILABLE:
        raise ResourceConflictError(
            f"O veículo #{vehicle_id} não está disponível. Status atual: {vehicle_status}"
        )


def prepend_note(notes: str | None, observation: str, event: str, at: datetime) -> str:
    stamped = f"{observation}\n[{at.strftime('%Y-%m-%d %H:%M')}] {event}"
    if notes:
        return f"{stamped}\n{notes}"
    return stamped
