from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .equipment import EquipmentCandidate

"""Validation result models.

ValidationOutcome pairs one EquipmentCandidate with its blocking errors and
non-blocking warnings. ValidationSummary is the preview counter block.
"""

__all__ = [
    "ValidationOutcome",
    "ValidationSummary",
]


@dataclass(frozen=True)
class ValidationOutcome:
    """Per-row validation result.

    row_number is 1-based and follows the order of the candidates passed to the
    validator (1 = first data row under the header).
    """
    row_number: int
    candidate: EquipmentCandidate
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ValidationSummary:
    total: int
    valid: int
    invalid: int
    warnings: int  # 警告の総数 (行数ではない)

    @staticmethod
    def from_outcomes(outcomes: Sequence[ValidationOutcome]) -> ValidationSummary:
        valid = sum(1 for o in outcomes if o.is_valid)
        return ValidationSummary(
            total=len(outcomes),
            valid=valid,
            invalid=len(outcomes) - valid,
            warnings=sum(len(o.warnings) for o in outcomes),
        )
