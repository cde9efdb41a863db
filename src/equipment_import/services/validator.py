from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any

import pandas as pd

from ..models.equipment import (
    ALLOWED_CATEGORIES,
    ALLOWED_CONDITIONS,
    ALLOWED_STATUSES,
    EquipmentCandidate,
    Lab,
    is_blank,
    to_decimal,
    to_lab_id,
)
from ..models.validation import ValidationOutcome, ValidationSummary

"""Per-row validation of EquipmentCandidates.

All rules are evaluated for every row (no short-circuit). Errors block the row
from import; warnings never do. A row is valid iff it has no errors.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "validate_candidate",
    "validate_candidates",
    "summarize",
    "is_parsable_date",
]


def is_parsable_date(value: Any) -> bool:
    """True when ``value`` can be read as a calendar date.

    Only text and date cells qualify; pandas would read a bare number such as
    2011 as an epoch offset.
    """
    if not isinstance(value, (str, date)):
        return False
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return False
    return not pd.isna(parsed)


def _lab_exists(lab_id: int, labs: Sequence[Lab]) -> bool:
    return any(lab.id == lab_id for lab in labs)


def validate_candidate(
    candidate: EquipmentCandidate, row_number: int, labs: Sequence[Lab] = ()
) -> ValidationOutcome:
    """Apply every row rule to one candidate.

    Parameters:
        candidate: transformed row
        row_number: 1-based position of the row in the import
        labs: reference labs; the lab check is skipped when empty

    Returns:
        ValidationOutcome with ordered errors and warnings
    """
    errors: list[str] = []
    warnings: list[str] = []

    if is_blank(candidate.name):
        errors.append("Name is required")

    if is_blank(candidate.category):
        errors.append("Category is required")
    elif str(candidate.category).strip() not in ALLOWED_CATEGORIES:
        errors.append(f"Invalid category: {candidate.category}")

    if is_blank(candidate.lab_id):
        warnings.append("Lab ID not specified (will default)")
    elif (lab_id := to_lab_id(candidate.lab_id)) is None:
        errors.append(f"Lab ID must be a positive integer: {candidate.lab_id}")
    elif labs and not _lab_exists(lab_id, labs):
        errors.append(f"Lab with ID {candidate.lab_id} not found")

    if not is_blank(candidate.status) and candidate.status not in ALLOWED_STATUSES:
        errors.append(
            f"Invalid status: {candidate.status}. Must be one of: {', '.join(ALLOWED_STATUSES)}"
        )
    if not is_blank(candidate.condition_status) and candidate.condition_status not in ALLOWED_CONDITIONS:
        errors.append(
            f"Invalid condition: {candidate.condition_status}. "
            f"Must be one of: {', '.join(ALLOWED_CONDITIONS)}"
        )

    if not is_blank(candidate.purchase_date) and not is_parsable_date(candidate.purchase_date):
        errors.append("Invalid purchase date format")
    if not is_blank(candidate.warranty_expiry) and not is_parsable_date(candidate.warranty_expiry):
        errors.append("Invalid warranty expiry date format")

    if is_blank(candidate.serial_number):
        warnings.append("Serial number not specified (will be auto-generated)")
    if is_blank(candidate.manufacturer):
        warnings.append("Manufacturer not specified")
    if is_blank(candidate.model):
        warnings.append("Model not specified")
    if is_blank(candidate.description):
        warnings.append("Description not specified")
    if not is_blank(candidate.purchase_price) and to_decimal(candidate.purchase_price) is None:
        warnings.append("Purchase price is not numeric")

    return ValidationOutcome(
        row_number=row_number,
        candidate=candidate,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def validate_candidates(
    candidates: Sequence[EquipmentCandidate], labs: Sequence[Lab] = ()
) -> list[ValidationOutcome]:
    """Validate a batch; one outcome per candidate, row numbers 1..n in input order."""
    outcomes = [validate_candidate(c, i, labs) for i, c in enumerate(candidates, start=1)]
    summary = summarize(outcomes)
    logger.debug(
        "validated rows=%d valid=%d invalid=%d warnings=%d",
        summary.total,
        summary.valid,
        summary.invalid,
        summary.warnings,
    )
    return outcomes


def summarize(outcomes: Sequence[ValidationOutcome]) -> ValidationSummary:
    return ValidationSummary.from_outcomes(outcomes)
