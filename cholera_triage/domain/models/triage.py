from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

SEVERITY_MIN = 1
SEVERITY_MAX = 5
INTENSITY_MIN = 1
INTENSITY_MAX = 5
DEHYDRATION_MIN = 0.0
DEHYDRATION_MAX = 30.0


@dataclass(frozen=True, slots=True)
class SymptomProfile:
    """Catalog facts about a symptom needed for scoring."""

    symptom_id: int
    name: str
    category: str
    severity: int
    cholera_specific: bool


@dataclass(frozen=True, slots=True)
class SymptomObservation:
    symptom_id: int
    intensity: int

    def to_dict(self) -> dict[str, int]:
        return {"symptom_id": self.symptom_id, "intensity": self.intensity}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> SymptomObservation:
        return cls(symptom_id=int(payload["symptom_id"]), intensity=int(payload["intensity"]))


@dataclass(frozen=True, slots=True)
class ObservedSymptom:
    """A catalog symptom paired with the intensity reported for one encounter."""

    profile: SymptomProfile
    intensity: int


@dataclass(frozen=True, slots=True)
class VitalSigns:
    dehydration_index: float = 0.0
    temperature: float | None = None
    heart_rate: int | None = None
    respiratory_rate: int | None = None


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    cholera_probability: float
    urgency_level: str
    recommendations: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ReferralSummary:
    referral_id: int
    requested_at: datetime
    reason: str
    status: str
    destination_facility_id: int | None = None
    destination_care_point_id: int | None = None
    responsible_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "referral_id": self.referral_id,
            "requested_at": self.requested_at.isoformat(),
            "reason": self.reason,
            "status": self.status,
            "destination_facility_id": self.destination_facility_id,
            "destination_care_point_id": self.destination_care_point_id,
            "responsible_id": self.responsible_id,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ReferralSummary:
        return cls(
            referral_id=int(payload["referral_id"]),
            requested_at=datetime.fromisoformat(str(payload["requested_at"])),
            reason=str(payload.get("reason") or ""),
            status=str(payload.get("status") or ""),
            destination_facility_id=payload.get("destination_facility_id"),
            destination_care_point_id=payload.get("destination_care_point_id"),
            responsible_id=payload.get("responsible_id"),
        )
