from __future__ import annotations

import pytest

from cholera_triage.domain.constants import TriageStatus, UrgencyLevel
from cholera_triage.domain.errors import InvalidTransitionError, TerminalStateError
from cholera_triage.domain.models.triage import ObservedSymptom, SymptomProfile, VitalSigns
from cholera_triage.domain.rules.triage_rules import (
    TRIAGE_TRANSITIONS,
    assess_risk,
    ensure_triage_editable,
    is_terminal_triage,
    validate_triage_transition,
)

ALLOWED = {
    ("pendente", "em_andamento"),
    ("pendente", "encaminhada"),
    ("em_andamento", "concluida"),
    ("em_andamento", "encaminhada"),
}


@pytest.mark.parametrize("from_status", TriageStatus.values())
@pytest.mark.parametrize("to_status", TriageStatus.values())
def test_transition_table(from_status: str, to_status: str) -> None:
    if from_status == to_status or (from_status, to_status) in ALLOWED:
        validate_triage_transition(from_status, to_status)
        return
    expected = TerminalStateError if is_terminal_triage(from_status) else InvalidTransitionError
    with pytest.raises(expected):
        validate_triage_transition(from_status, to_status)


def test_terminal_statuses_have_no_exits() -> None:
    assert TRIAGE_TRANSITIONS[TriageStatus.CONCLUDED] == frozenset()
    assert TRIAGE_TRANSITIONS[TriageStatus.REFERRED] == frozenset()


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(InvalidTransitionError, match="desconhecido"):
        validate_triage_transition("pendente", "arquivada")


def test_clinical_edit_guard() -> None:
    ensure_triage_editable("pendente")
    ensure_triage_editable("em_andamento")
    with pytest.raises(TerminalStateError):
        ensure_triage_editable("concluida")
    with pytest.raises(TerminalStateError):
        ensure_triage_editable("encaminhada")


def test_assess_risk_bundles_score_urgency_and_recommendations() -> None:
    profile = SymptomProfile(
        symptom_id=1,
        name="Diarreia aquosa",
        category="gastrointestinal",
        severity=5,
        cholera_specific=True,
    )
    assessment = assess_risk(
        [ObservedSymptom(profile=profile, intensity=5)],
        VitalSigns(dehydration_index=28.0, temperature=38.0, heart_rate=135),
    )
    # 0.6 * 100 + 0.3 * 93.33 + 0.1 * 33.33 = 91.33, already critico
    assert assessment.cholera_probability == pytest.approx(91.33)
    assert assessment.urgency_level == UrgencyLevel.CRITICAL
    assert "Encaminhamento imediato para centro de tratamento de cólera" in assessment.recommendations
