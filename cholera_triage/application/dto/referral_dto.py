from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ReferralStatusLiteral = Literal["pendente", "aprovado", "em_transporte", "concluido", "cancelado"]
PriorityLiteral = Literal["baixa", "media", "alta", "emergencia"]


class ReferralCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    patient_id: int
    triage_id: int | None = None
    origin_facility_id: int | None = None
    destination_facility_id: int | None = None
    origin_care_point_id: int | None = None
    destination_care_point_id: int | None = None
    responsible_id: int | None = None
    vehicle_id: int | None = None
    priority: PriorityLiteral | None = None
    reason: str = Field(..., min_length=1, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    required_resources: list[str] = Field(default_factory=list)
    estimated_departure: datetime | None = None
    estimated_arrival: datetime | None = None


class ReferralFromTriageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    destination_facility_id: int | None = None
    destination_care_point_id: int | None = None
    responsible_id: int | None = None
    priority: PriorityLiteral | None = None
    reason: str = Field(..., min_length=1, max_length=255)


class ReferralUpdateRequest(BaseModel):
    """Partial update of non-status fields; only explicitly set fields are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    destination_facility_id: int | None = None
    destination_care_point_id: int | None = None
    responsible_id: int | None = None
    priority: PriorityLiteral | None = None
    reason: str | None = Field(default=None, min_length=1, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    required_resources: list[str] | None = None
    estimated_departure: datetime | None = None
    estimated_arrival: datetime | None = None


class ReferralStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    status: ReferralStatusLiteral
    observation: str | None = Field(default=None, max_length=500)
    departed_at: datetime | None = None
    arrived_at: datetime | None = None


class VehicleAssignmentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    vehicle_id: int
    estimated_departure: datetime | None = None
    estimated_arrival: datetime | None = None
    observation: str | None = Field(default=None, max_length=500)


class ReferralFilters(BaseModel):
    status: ReferralStatusLiteral | None = None
    priority: PriorityLiteral | None = None
    patient_id: int | None = None
    triage_id: int | None = None
    origin_facility_id: int | None = None
    destination_facility_id: int | None = None
    vehicle_id: int | None = None


class ReferralDto(BaseModel):
    id: int
    triage_id: int | None = None
    patient_id: int
    origin_facility_id: int | None = None
    destination_facility_id: int | None = None
    origin_care_point_id: int | None = None
    destination_care_point_id: int | None = None
    vehicle_id: int | None = None
    responsible_id: int | None = None
    status: ReferralStatusLiteral
    priority: PriorityLiteral
    referral_type: str | None = None
    reason: str
    notes: str | None = None
    required_resources: list[str] = Field(default_factory=list)
    requested_at: datetime
    estimated_departure: datetime | None = None
    estimated_arrival: datetime | None = None
    departed_at: datetime | None = None
    arrived_at: datetime | None = None
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    version: int


class PendingReferralsDto(BaseModel):
    items: list[ReferralDto] = Field(default_factory=list)
    total_emergencies: int = 0
