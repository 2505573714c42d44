from __future__ import annotations

from enum import StrEnum


class TriageStatus(StrEnum):
    PENDING = "pendente"
    IN_PROGRESS = "em_andamento"
    CONCLUDED = "concluida"
    REFERRED = "encaminhada"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class UrgencyLevel(StrEnum):
    LOW = "baixo"
    MEDIUM = "medio"
    HIGH = "alto"
    CRITICAL = "critico"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]

    @classmethod
    def ordered(cls) -> list[UrgencyLevel]:
        return [cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]


class ReferralStatus(StrEnum):
    PENDING = "pendente"
    APPROVED = "aprovado"
    IN_TRANSPORT = "em_transporte"
    COMPLETED = "concluido"
    CANCELLED = "cancelado"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class ReferralPriority(StrEnum):
    LOW = "baixa"
    MEDIUM = "media"
    HIGH = "alta"
    EMERGENCY = "emergencia"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class ReferralType(StrEnum):
    FACILITY_TO_FACILITY = "unidade_para_unidade"
    FACILITY_TO_CARE_POINT = "unidade_para_ponto"
    CARE_POINT_TO_FACILITY = "ponto_para_unidade"
    CARE_POINT_TO_CARE_POINT = "ponto_para_ponto"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class VehicleStatus(StrEnum):
    AVAILABLE = "disponivel"
    IN_TRANSIT = "em_transito"
    MAINTENANCE = "em_manutencao"
    UNAVAILABLE = "indisponivel"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]
