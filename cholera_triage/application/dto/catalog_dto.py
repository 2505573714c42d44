from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SymptomDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    category: str
    severity: int = Field(..., ge=1, le=5)
    cholera_specific: bool
    is_active: bool = True


class SymptomFilters(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    cholera_specific: bool | None = None
    category: str | None = None
    min_severity: int | None = Field(default=None, ge=1, le=5)


class PatientCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(..., min_length=1)


class PatientDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str


class VehicleCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    plate: str = Field(..., min_length=1, max_length=10)
    vehicle_type: Literal["ambulancia", "transporte", "apoio"] = "ambulancia"
    status: Literal["disponivel", "em_transito", "em_manutencao", "indisponivel"] = "disponivel"
    patient_capacity: int = Field(default=1, ge=1)
    description: str | None = Field(default=None, max_length=255)


class VehicleDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plate: str
    vehicle_type: str
    status: str
    patient_capacity: int
    description: str | None = None
    version: int
