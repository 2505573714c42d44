from __future__ import annotations

from cholera_triage.domain.constants import UrgencyLevel
from cholera_triage.domain.models.triage import ObservedSymptom, SymptomProfile, VitalSigns
from cholera_triage.domain.rules.recommendation_rules import (
    RECOMMENDATION_RULES,
    RecommendationContext,
    fired_rules,
    generate_recommendations,
)


def _codes(ctx: RecommendationContext) -> list[str]:
    return [rule.code for rule in fired_rules(ctx)]


def _specific_symptom() -> ObservedSymptom:
    profile = SymptomProfile(
        symptom_id=1,
        name="Diarreia aquosa",
        category="gastrointestinal",
        severity=5,
        cholera_specific=True,
    )
    return ObservedSymptom(profile=profile, intensity=5)


def test_rule_codes_are_unique() -> None:
    codes = [rule.code for rule in RECOMMENDATION_RULES]
    assert len(codes) == len(set(codes))


def test_low_risk_gets_baseline_and_home_care_only() -> None:
    ctx = RecommendationContext(probability=9.2, urgency_level=UrgencyLevel.LOW, vitals=VitalSigns(2.0, 37.0))
    assert _codes(ctx) == ["baseline_hydration", "home_care", "general_hygiene"]


def test_rehydration_thresholds() -> None:
    oral = RecommendationContext(probability=10.0, urgency_level=UrgencyLevel.LOW, vitals=VitalSigns(5.0))
    assert "oral_rehydration" in _codes(oral)
    assert "iv_rehydration" not in _codes(oral)

    iv = RecommendationContext(probability=10.0, urgency_level=UrgencyLevel.LOW, vitals=VitalSigns(10.0))
    assert {"oral_rehydration", "iv_rehydration"} <= set(_codes(iv))

    by_probability = RecommendationContext(
        probability=80.0,
        urgency_level=UrgencyLevel.CRITICAL,
        vitals=VitalSigns(0.0),
    )
    assert {"oral_rehydration", "iv_rehydration"} <= set(_codes(by_probability))


def test_fever_rules() -> None:
    mild = RecommendationContext(probability=20.0, urgency_level=UrgencyLevel.LOW, vitals=VitalSigns(0.0, 38.0))
    assert "antipyretic" in _codes(mild)
    assert "high_fever_monitoring" not in _codes(mild)

    high = RecommendationContext(probability=20.0, urgency_level=UrgencyLevel.LOW, vitals=VitalSigns(0.0, 39.0))
    assert {"antipyretic", "high_fever_monitoring"} <= set(_codes(high))


def test_cholera_specific_symptoms_trigger_public_health_measures() -> None:
    ctx = RecommendationContext(
        probability=40.0,
        urgency_level=UrgencyLevel.MEDIUM,
        vitals=VitalSigns(3.0),
        symptoms=[_specific_symptom()],
    )
    assert {"isolation", "surveillance_notification", "stool_sample"} <= set(_codes(ctx))


def test_critical_case_fires_rules_in_table_order() -> None:
    ctx = RecommendationContext(
        probability=92.0,
        urgency_level=UrgencyLevel.CRITICAL,
        vitals=VitalSigns(dehydration_index=28.0, temperature=39.5, heart_rate=140),
        symptoms=[_specific_symptom()],
    )
    codes = _codes(ctx)
    table_order = [rule.code for rule in RECOMMENDATION_RULES]
    assert codes == [code for code in table_order if code in codes]
    assert {"shock_assessment", "frequent_monitoring", "senior_escalation", "immediate_referral"} <= set(codes)
    assert "home_care" not in codes


def test_messages_match_fired_rules() -> None:
    ctx = RecommendationContext(probability=72.0, urgency_level=UrgencyLevel.HIGH, vitals=VitalSigns(8.0, 39.0))
    messages = generate_recommendations(ctx)
    assert messages == [rule.message for rule in fired_rules(ctx)]
    assert any("Reidratação" in message for message in messages)


def test_antibiotic_therapy_starts_at_high_probability() -> None:
    below = RecommendationContext(probability=59.9, urgency_level=UrgencyLevel.MEDIUM, vitals=VitalSigns(3.0))
    assert "antibiotic_therapy" not in _codes(below)

    at_threshold = RecommendationContext(probability=60.0, urgency_level=UrgencyLevel.HIGH, vitals=VitalSigns(3.0))
    assert "antibiotic_therapy" in _codes(at_threshold)
    assert "Antibioticoterapia conforme protocolo de cólera" in generate_recommendations(at_threshold)


def test_general_hygiene_only_below_medium_probability() -> None:
    low = RecommendationContext(probability=29.9, urgency_level=UrgencyLevel.LOW, vitals=VitalSigns(0.0))
    assert "Medidas gerais de higiene" in generate_recommendations(low)

    medium = RecommendationContext(probability=30.0, urgency_level=UrgencyLevel.MEDIUM, vitals=VitalSigns(0.0))
    assert "general_hygiene" not in _codes(medium)
