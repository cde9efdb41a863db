from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from .import_result import ImportBatchResult
from .validation import ValidationOutcome, ValidationSummary

"""ImportStep enum and ImportState model.

The import flow is an explicit finite state instead of ambient UI variables:
each pipeline stage takes the current ImportState and returns the next one
together with its payload.

State transitions: uploading → preview_validating → importing
Any state may be reset back to uploading, discarding in-flight data.
"""

__all__ = [
    "ImportStep",
    "ImportState",
]


class ImportStep(Enum):
    """Step of a single user-initiated import.

    - UPLOADING: waiting for a file (initial / reset state)
    - PREVIEW_VALIDATING: file decoded, rows transformed and validated
    - IMPORTING: valid rows submitted, collaborator result available
    """
    UPLOADING = "uploading"
    PREVIEW_VALIDATING = "preview_validating"
    IMPORTING = "importing"


@dataclass(frozen=True)
class ImportState:
    """Snapshot of one import attempt.

    ``progress`` is a 0-100 percentage for display only.
    ``success_message`` / ``error_message`` are the user-facing texts of the
    last completed stage; both may be set after a partially successful import.
    """
    step: ImportStep = ImportStep.UPLOADING
    progress: int = 0
    file_name: str | None = None
    outcomes: tuple[ValidationOutcome, ...] = ()
    result: ImportBatchResult | None = None
    success_message: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def summary(self) -> ValidationSummary:
        return ValidationSummary.from_outcomes(self.outcomes)

    @property
    def valid_outcomes(self) -> tuple[ValidationOutcome, ...]:
        return tuple(o for o in self.outcomes if o.is_valid)

    def advance(self, step: ImportStep, **changes: object) -> ImportState:
        """Return a copy moved to ``step`` with the given field changes."""
        return replace(self, step=step, **changes)  # type: ignore[arg-type]
