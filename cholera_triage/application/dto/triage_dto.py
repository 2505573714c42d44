from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TriageStatusLiteral = Literal["pendente", "em_andamento", "concluida", "encaminhada"]
UrgencyLiteral = Literal["baixo", "medio", "alto", "critico"]


class SymptomObservationDto(BaseModel):
    symptom_id: int
    intensity: int = Field(..., ge=1, le=5)


class TriageCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    patient_id: int
    facility_id: int | None = None
    care_point_id: int | None = None
    clinician_id: int | None = None
    symptoms: list[SymptomObservationDto] = Field(default_factory=list)
    dehydration_index: float = Field(default=0.0, ge=0, le=30)
    temperature: float | None = Field(default=None, ge=34, le=42)
    heart_rate: int | None = Field(default=None, ge=40, le=220)
    respiratory_rate: int | None = Field(default=None, ge=8, le=60)
    observations: str | None = Field(default=None, max_length=1000)
    symptom_onset_at: datetime | None = None

    @field_validator("symptoms")
    @classmethod
    def _unique_symptoms(cls, value: list[SymptomObservationDto]) -> list[SymptomObservationDto]:
        ids = [item.symptom_id for item in value]
        if len(ids) != len(set(ids)):
            raise ValueError("Cada sintoma só pode ser registado uma vez por triagem")
        return value


class TriageUpdateRequest(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    facility_id: int | None = None
    care_point_id: int | None = None
    clinician_id: int | None = None
    symptoms: list[SymptomObservationDto] | None = None
    dehydration_index: float | None = Field(default=None, ge=0, le=30)
    temperature: float | None = Field(default=None, ge=34, le=42)
    heart_rate: int | None = Field(default=None, ge=40, le=220)
    respiratory_rate: int | None = Field(default=None, ge=8, le=60)
    observations: str | None = Field(default=None, max_length=1000)
    symptom_onset_at: datetime | None = None

    @field_validator("symptoms")
    @classmethod
    def _unique_symptoms(cls, value: list[SymptomObservationDto] | None) -> list[SymptomObservationDto] | None:
        if value is None:
            return value
        ids = [item.symptom_id for item in value]
        if len(ids) != len(set(ids)):
            raise ValueError("Cada sintoma só pode ser registado uma vez por triagem")
        return value


class TriageStatusUpdateRequest(BaseModel):
    status: TriageStatusLiteral
    concluded_at: datetime | None = None


class TriageFilters(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    status: TriageStatusLiteral | None = None
    urgency_level: UrgencyLiteral | None = None
    patient_id: int | None = None
    facility_id: int | None = None
    care_point_id: int | None = None
    min_probability: float | None = Field(default=None, ge=0, le=100)


class ReferralSummaryDto(BaseModel):
    referral_id: int
    requested_at: datetime
    reason: str
    status: str
    destination_facility_id: int | None = None
    destination_care_point_id: int | None = None
    responsible_id: int | None = None


class TriageDto(BaseModel):
    id: int
    patient_id: int
    facility_id: int | None = None
    care_point_id: int | None = None
    clinician_id: int | None = None
    status: TriageStatusLiteral
    urgency_level: UrgencyLiteral
    symptom_observations: list[SymptomObservationDto] = Field(default_factory=list)
    dehydration_index: float
    temperature: float | None = None
    heart_rate: int | None = None
    respiratory_rate: int | None = None
    cholera_probability: float
    recommendations: list[str] = Field(default_factory=list)
    observations: str | None = None
    referral_history: list[ReferralSummaryDto] = Field(default_factory=list)
    symptom_onset_at: datetime | None = None
    concluded_at: datetime | None = None
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    version: int
