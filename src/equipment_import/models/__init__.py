"""Domain models for the equipment spreadsheet import tool.

This package contains the domain model classes shared by the decoder,
transformer, validator and importer stages.
"""

from .config_models import ApiConfig, DefaultsConfig, ImportConfig, LimitsConfig
from .equipment import (
    ALLOWED_CATEGORIES,
    ALLOWED_CONDITIONS,
    ALLOWED_STATUSES,
    Category,
    ConditionStatus,
    EquipmentCandidate,
    EquipmentStatus,
    Lab,
    RawRow,
)
from .import_result import ImportBatchResult
from .import_state import ImportState, ImportStep
from .validation import ValidationOutcome, ValidationSummary

__all__ = [
    # Configuration models
    "ApiConfig",
    "DefaultsConfig",
    "ImportConfig",
    "LimitsConfig",
    # Equipment models
    "ALLOWED_CATEGORIES",
    "ALLOWED_CONDITIONS",
    "ALLOWED_STATUSES",
    "Category",
    "ConditionStatus",
    "EquipmentCandidate",
    "EquipmentStatus",
    "Lab",
    "RawRow",
    # Processing models
    "ImportBatchResult",
    "ImportState",
    "ImportStep",
    "ValidationOutcome",
    "ValidationSummary",
]
