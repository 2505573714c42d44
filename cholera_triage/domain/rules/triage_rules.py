from __future__ import annotations

from collections.abc import Sequence

from cholera_triage.domain.constants import TriageStatus
from cholera_triage.domain.errors import InvalidTransitionError, TerminalStateError
from cholera_triage.domain.models.triage import ObservedSymptom, RiskAssessment, VitalSigns
from cholera_triage.domain.rules.recommendation_rules import RecommendationContext, generate_recommendations
from cholera_triage.domain.rules.risk_rules import classify_urgency, score_cholera_probability

TRIAGE_TRANSITIONS: dict[str, frozenset[str]] = {
    TriageStatus.PENDING: frozenset({TriageStatus.IN_PROGRESS, TriageStatus.REFERRED}),
    TriageStatus.IN_PROGRESS: frozenset({TriageStatus.CONCLUDED, TriageStatus.REFERRED}),
    TriageStatus.CONCLUDED: frozenset(),
    TriageStatus.REFERRED: frozenset(),
}

TERMINAL_TRIAGE_STATUSES = frozenset({TriageStatus.CONCLUDED, TriageStatus.REFERRED})


def is_terminal_triage(status: str) -> bool:
    return status in TERMINAL_TRIAGE_STATUSES


def validate_triage_transition(from_status: str, to_status: str) -> None:
    if to_status not in TRIAGE_TRANSITIONS:
        raise InvalidTransitionError(f"Status de triagem desconhecido: '{to_status}'")
    if from_status == to_status:
        return
    if is_terminal_triage(from_status):
        raise TerminalStateError(f"Triagem com status '{from_status}' não pode mudar de status")
    if to_status not in TRIAGE_TRANSITIONS[from_status]:
        raise InvalidTransitionError(f"Transição inválida de status da triagem: de '{from_status}' para '{to_status}'")


def ensure_triage_editable(status: str) -> None:
    if is_terminal_triage(status):
        raise TerminalStateError(f"Dados clínicos de uma triagem com status '{status}' não podem ser alterados")


def assess_risk(symptoms: Sequence[ObservedSymptom], vitals: VitalSigns) -> RiskAssessment:
    probability = score_cholera_probability(symptoms, vitals.dehydration_index, vitals.temperature)
    urgency = classify_urgency(probability, vitals)
    recommendations = generate_recommendations(
        RecommendationContext(probability=probability, urgency_level=urgency, vitals=vitals, symptoms=symptoms)
    )
    return RiskAssessment(
        cholera_probability=probability,
        urgency_level=urgency.value,
        recommendations=recommendations,
    )
