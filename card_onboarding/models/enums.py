"""Enumeration types for the onboarding domain."""

from enum import Enum


class CreditState(str, Enum):
    """Credit lifecycle of a customer, derived from aggregate fields."""

    REGISTERED = "REGISTERED"
    ANALYSIS_PENDING = "ANALYSIS_PENDING"
    ANALYZED_APT = "ANALYZED_APT"
    ANALYZED_NOT_APT = "ANALYZED_NOT_APT"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    ISSUANCE_REQUESTED = "ISSUANCE_REQUESTED"
    ISSUED = "ISSUED"
    ISSUANCE_FAILED = "ISSUANCE_FAILED"


class CreditHistory(str, Enum):
    GOOD = "BOM"
    REGULAR = "REGULAR"
    POOR = "RUIM"


class IssuanceStatus(str, Enum):
    ELIGIBLE_TO_REQUEST = "APTO_PARA_SOLICITAR"
    NOT_ELIGIBLE = "NAO_APTO"
    PROCESSING = "EM_PROCESSAMENTO"
