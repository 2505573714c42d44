from __future__ import annotations

from collections.abc import Sequence

from cholera_triage.domain.constants import UrgencyLevel
from cholera_triage.domain.errors import ValidationError
from cholera_triage.domain.models.triage import (
    DEHYDRATION_MAX,
    DEHYDRATION_MIN,
    INTENSITY_MAX,
    INTENSITY_MIN,
    SEVERITY_MAX,
    SEVERITY_MIN,
    ObservedSymptom,
    VitalSigns,
)

CHOLERA_SPECIFIC_MULTIPLIER = 2.0
MAX_SYMPTOM_CONTRIBUTION = SEVERITY_MAX * CHOLERA_SPECIFIC_MULTIPLIER

SYMPTOM_WEIGHT = 0.60
DEHYDRATION_WEIGHT = 0.30
FEVER_WEIGHT = 0.10

FEVER_THRESHOLD = 37.5
FEVER_CEILING = 39.0

# Lower bounds of each urgency band, highest first.
URGENCY_THRESHOLDS: tuple[tuple[float, UrgencyLevel], ...] = (
    (80.0, UrgencyLevel.CRITICAL),
    (60.0, UrgencyLevel.HIGH),
    (30.0, UrgencyLevel.MEDIUM),
    (0.0, UrgencyLevel.LOW),
)

DANGER_HEART_RATE = 130
DANGER_RESPIRATORY_RATE = 30
DANGER_DEHYDRATION_INDEX = 27.0
DANGER_TEMPERATURE = 40.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def symptom_contribution(observed: ObservedSymptom) -> float:
    profile = observed.profile
    if not SEVERITY_MIN <= profile.severity <= SEVERITY_MAX:
        raise ValidationError(f"Gravidade do sintoma '{profile.name}' fora do intervalo 1-5")
    if not INTENSITY_MIN <= observed.intensity <= INTENSITY_MAX:
        raise ValidationError(f"Intensidade do sintoma '{profile.name}' fora do intervalo 1-5")
    base_weight = profile.severity * (CHOLERA_SPECIFIC_MULTIPLIER if profile.cholera_specific else 1.0)
    return base_weight * (observed.intensity / INTENSITY_MAX)


def symptom_term(symptoms: Sequence[ObservedSymptom]) -> float:
    if not symptoms:
        return 0.0
    score = sum(symptom_contribution(item) for item in symptoms)
    return _clamp(score / (MAX_SYMPTOM_CONTRIBUTION * len(symptoms)) * 100.0)


def dehydration_term(dehydration_index: float) -> float:
    if not DEHYDRATION_MIN <= dehydration_index <= DEHYDRATION_MAX:
        raise ValidationError("Índice de desidratação deve estar entre 0 e 30")
    return _clamp(dehydration_index / DEHYDRATION_MAX * 100.0)


def fever_term(temperature: float | None) -> float:
    if temperature is None or temperature <= FEVER_THRESHOLD:
        return 0.0
    return _clamp((temperature - FEVER_THRESHOLD) / (FEVER_CEILING - FEVER_THRESHOLD) * 100.0)


def score_cholera_probability(
    symptoms: Sequence[ObservedSymptom],
    dehydration_index: float = 0.0,
    temperature: float | None = None,
) -> float:
    blended = (
        SYMPTOM_WEIGHT * symptom_term(symptoms)
        + DEHYDRATION_WEIGHT * dehydration_term(dehydration_index)
        + FEVER_WEIGHT * fever_term(temperature)
    )
    return round(_clamp(blended), 2)


def probability_level(probability: float) -> UrgencyLevel:
    for lower_bound, level in URGENCY_THRESHOLDS:
        if probability >= lower_bound:
            return level
    return UrgencyLevel.LOW


def danger_signs(vitals: VitalSigns) -> list[str]:
    """Names of vital signs currently inside a danger band; missing vitals never count."""
    signs: list[str] = []
    if vitals.heart_rate is not None and vitals.heart_rate >= DANGER_HEART_RATE:
        signs.append("heart_rate")
    if vitals.respiratory_rate is not None and vitals.respiratory_rate >= DANGER_RESPIRATORY_RATE:
        signs.append("respiratory_rate")
    if vitals.dehydration_index >= DANGER_DEHYDRATION_INDEX:
        signs.append("dehydration_index")
    if vitals.temperature is not None and vitals.temperature >= DANGER_TEMPERATURE:
        signs.append("temperature")
    return signs


def escalate(level: UrgencyLevel) -> UrgencyLevel:
    ordered = UrgencyLevel.ordered()
    index = ordered.index(level)
    return ordered[min(index + 1, len(ordered) - 1)]


def classify_urgency(probability: float, vitals: VitalSigns) -> UrgencyLevel:
    level = probability_level(probability)
    if danger_signs(vitals):
        return escalate(level)
    return level
