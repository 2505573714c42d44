"""Ordered rule table that turns a risk assessment into clinical guidance.

Every rule whose predicate holds contributes its message, in table order.
No rule suppresses another, so the fired set for an input is simply the
filter of ``RECOMMENDATION_RULES`` by predicate.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from cholera_triage.domain.constants import UrgencyLevel
from cholera_triage.domain.models.triage import ObservedSymptom, VitalSigns
from cholera_triage.domain.rules.risk_rules import FEVER_CEILING, FEVER_THRESHOLD, danger_signs

ORAL_REHYDRATION_DEHYDRATION = 5.0
ORAL_REHYDRATION_PROBABILITY = 30.0
IV_REHYDRATION_DEHYDRATION = 10.0
IV_REHYDRATION_PROBABILITY = 80.0
FREQUENT_MONITORING_PROBABILITY = 60.0
ANTIBIOTIC_THERAPY_PROBABILITY = 60.0
GENERAL_HYGIENE_PROBABILITY = 30.0


@dataclass(frozen=True, slots=True)
class RecommendationContext:
    probability: float
    urgency_level: UrgencyLevel
    vitals: VitalSigns
    symptoms: Sequence[ObservedSymptom] = ()

    @property
    def has_cholera_specific_symptom(self) -> bool:
        return any(item.profile.cholera_specific for item in self.symptoms)


@dataclass(frozen=True, slots=True)
class RecommendationRule:
    code: str
    predicate: Callable[[RecommendationContext], bool]
    message: str


def _febrile(ctx: RecommendationContext) -> bool:
    return ctx.vitals.temperature is not None and ctx.vitals.temperature > FEVER_THRESHOLD


def _high_fever(ctx: RecommendationContext) -> bool:
    return ctx.vitals.temperature is not None and ctx.vitals.temperature >= FEVER_CEILING


RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        code="baseline_hydration",
        predicate=lambda ctx: True,
        message="Manter hidratação adequada",
    ),
    RecommendationRule(
        code="oral_rehydration",
        predicate=lambda ctx: (
            ctx.vitals.dehydration_index >= ORAL_REHYDRATION_DEHYDRATION
            or ctx.probability >= ORAL_REHYDRATION_PROBABILITY
        ),
        message="Reidratação oral intensificada com SRO (sais de reidratação oral)",
    ),
    RecommendationRule(
        code="iv_rehydration",
        predicate=lambda ctx: (
            ctx.vitals.dehydration_index >= IV_REHYDRATION_DEHYDRATION
            or ctx.probability >= IV_REHYDRATION_PROBABILITY
        ),
        message="Reidratação intravenosa urgente com Ringer Lactato",
    ),
    RecommendationRule(
        code="antipyretic",
        predicate=_febrile,
        message="Administrar antipirético e monitorizar a temperatura",
    ),
    RecommendationRule(
        code="high_fever_monitoring",
        predicate=_high_fever,
        message="Febre alta: reavaliar a temperatura a cada hora",
    ),
    RecommendationRule(
        code="isolation",
        predicate=lambda ctx: ctx.has_cholera_specific_symptom,
        message="Isolamento do paciente com precauções entéricas",
    ),
    RecommendationRule(
        code="surveillance_notification",
        predicate=lambda ctx: ctx.has_cholera_specific_symptom,
        message="Notificação ao sistema de vigilância epidemiológica",
    ),
    RecommendationRule(
        code="stool_sample",
        predicate=lambda ctx: ctx.has_cholera_specific_symptom,
        message="Coleta de amostra de fezes para confirmação laboratorial de cólera",
    ),
    RecommendationRule(
        code="shock_assessment",
        predicate=lambda ctx: bool(danger_signs(ctx.vitals)),
        message="Sinais vitais de perigo: avaliar choque hipovolêmico",
    ),
    RecommendationRule(
        code="frequent_monitoring",
        predicate=lambda ctx: ctx.probability >= FREQUENT_MONITORING_PROBABILITY,
        message="Monitoramento frequente de sinais vitais",
    ),
    RecommendationRule(
        code="antibiotic_therapy",
        predicate=lambda ctx: ctx.probability >= ANTIBIOTIC_THERAPY_PROBABILITY,
        message="Antibioticoterapia conforme protocolo de cólera",
    ),
    RecommendationRule(
        code="senior_escalation",
        predicate=lambda ctx: ctx.urgency_level == UrgencyLevel.CRITICAL,
        message="Escalar imediatamente para a equipa clínica sénior",
    ),
    RecommendationRule(
        code="immediate_referral",
        predicate=lambda ctx: ctx.urgency_level == UrgencyLevel.CRITICAL,
        message="Encaminhamento imediato para centro de tratamento de cólera",
    ),
    RecommendationRule(
        code="home_care",
        predicate=lambda ctx: ctx.urgency_level == UrgencyLevel.LOW,
        message="Orientações para manejo domiciliar; retornar se houver piora dos sintomas",
    ),
    RecommendationRule(
        code="general_hygiene",
        predicate=lambda ctx: ctx.probability < GENERAL_HYGIENE_PROBABILITY,
        message="Medidas gerais de higiene",
    ),
)


def fired_rules(ctx: RecommendationContext) -> list[RecommendationRule]:
    return [rule for rule in RECOMMENDATION_RULES if rule.predicate(ctx)]


def generate_recommendations(ctx: RecommendationContext) -> list[str]:
    return [rule.message for rule in fired_rules(ctx)]
