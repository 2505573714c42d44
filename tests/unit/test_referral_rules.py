from __future__ import annotations

from datetime import datetime

import pytest

from cholera_triage.domain.constants import ReferralPriority, ReferralStatus, ReferralType
from cholera_triage.domain.errors import (
    InvalidTransitionError,
    ResourceConflictError,
    TerminalStateError,
    ValidationError,
)
from cholera_triage.domain.rules.referral_rules import (
    derive_referral_type,
    ensure_referral_editable,
    ensure_vehicle_assignable,
    prepend_note,
    priority_for_urgency,
    validate_referral_transition,
)

ALLOWED = {
    ("pendente", "aprovado"),
    ("pendente", "cancelado"),
    ("aprovado", "em_transporte"),
    ("aprovado", "cancelado"),
    ("em_transporte", "concluido"),
    ("em_transporte", "cancelado"),
}


@pytest.mark.parametrize("from_status", ReferralStatus.values())
@pytest.mark.parametrize("to_status", ReferralStatus.values())
def test_transition_table_is_exhaustive(from_status: str, to_status: str) -> None:
    if from_status == to_status or (from_status, to_status) in ALLOWED:
        validate_referral_transition(from_status, to_status)
        return
    with pytest.raises(InvalidTransitionError):
        validate_referral_transition(from_status, to_status)


def test_leaving_terminal_state_is_terminal_error() -> None:
    with pytest.raises(TerminalStateError):
        validate_referral_transition("concluido", "pendente")
    with pytest.raises(TerminalStateError):
        validate_referral_transition("cancelado", "aprovado")


def test_backwards_transition_from_transport_is_rejected() -> None:
    with pytest.raises(InvalidTransitionError, match="em_transporte"):
        validate_referral_transition("em_transporte", "pendente")


def test_terminal_referrals_are_not_editable() -> None:
    ensure_referral_editable("em_transporte")
    with pytest.raises(TerminalStateError, match="concluído"):
        ensure_referral_editable("concluido")
    with pytest.raises(TerminalStateError, match="cancelado"):
        ensure_referral_editable("cancelado")


@pytest.mark.parametrize(
    "legs, expected",
    [
        ((1, 2, None, None), ReferralType.FACILITY_TO_FACILITY),
        ((1, None, None, 5), ReferralType.FACILITY_TO_CARE_POINT),
        ((None, 2, 4, None), ReferralType.CARE_POINT_TO_FACILITY),
        ((None, None, 4, 5), ReferralType.CARE_POINT_TO_CARE_POINT),
        ((None, 2, None, None), None),
        ((1, None, None, None), None),
    ],
)
def test_referral_type_derivation(legs: tuple, expected: ReferralType | None) -> None:
    assert derive_referral_type(*legs) == expected


def test_leg_with_both_kinds_is_invalid() -> None:
    with pytest.raises(ValidationError, match="origem"):
        derive_referral_type(1, 2, 3, None)
    with pytest.raises(ValidationError, match="destino"):
        derive_referral_type(1, 2, None, 3)


def test_priority_follows_urgency() -> None:
    assert priority_for_urgency("critico") == ReferralPriority.EMERGENCY
    assert priority_for_urgency("alto") == ReferralPriority.HIGH
    assert priority_for_urgency("medio") == ReferralPriority.MEDIUM
    assert priority_for_urgency("baixo") == ReferralPriority.LOW


def test_vehicle_assignment_guard() -> None:
    ensure_vehicle_assignable("pendente", "disponivel", vehicle_id=1)
    ensure_vehicle_assignable("aprovado", "disponivel", vehicle_id=1)
    with pytest.raises(InvalidTransitionError):
        ensure_vehicle_assignable("em_transporte", "disponivel", vehicle_id=1)
    with pytest.raises(ResourceConflictError, match="#7"):
        ensure_vehicle_assignable("pendente", "em_transito", vehicle_id=7)
    with pytest.raises(InvalidTransitionError, match="#3"):
        ensure_vehicle_assignable("aprovado", "disponivel", vehicle_id=8, assigned_vehicle_id=3)


def test_prepend_note_puts_latest_entry_first() -> None:
    at = datetime(2025, 6, 20, 14, 5)
    first = prepend_note(None, "Paciente estável", "Encaminhamento aprovado", at)
    assert first == "Paciente estável\n[2025-06-20 14:05] Encaminhamento aprovado"
    second = prepend_note(first, "Saída da unidade", "Paciente em transporte", at)
    assert second.startswith("Saída da unidade\n[2025-06-20 14:05] Paciente em transporte\n")
    assert second.endswith(first)
