from __future__ import annotations

import re

from equipment_import.models import (
    EquipmentCandidate,
    ImportBatchResult,
    ImportState,
    ImportStep,
    ValidationOutcome,
)
from equipment_import.services.summary import (
    failure_message,
    render_summary_line,
    success_message,
)

"""Unit tests for summary rendering and user messages."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+file=(\S+)\s+rows=([0-9]+)\s+valid=([0-9]+)\s+invalid=([0-9]+)\s+"
    r"warnings=([0-9]+)\s+imported=([0-9]+)\s+failed=([0-9]+)$"
)


def _outcomes(valid: int, invalid: int, warnings_each: int = 0) -> tuple[ValidationOutcome, ...]:
    candidate = EquipmentCandidate(name="x", serial_number="s", category="computer")
    warnings = tuple(f"w{i}" for i in range(warnings_each))
    good = [ValidationOutcome(i + 1, candidate, (), warnings) for i in range(valid)]
    bad = [
        ValidationOutcome(valid + i + 1, candidate, ("Name is required",), warnings)
        for i in range(invalid)
    ]
    return tuple(good + bad)


def test_render_summary_line_after_import():
    state = ImportState(
        step=ImportStep.IMPORTING,
        progress=100,
        file_name="inventory.xlsx",
        outcomes=_outcomes(4, 1, warnings_each=2),
        result=ImportBatchResult(succeeded=3, failed=1, errors=("Row 2: duplicate",)),
    )
    line = render_summary_line(state)
    match = SUMMARY_PATTERN.match(line)
    assert match, f"SUMMARY line should match regex: {line}"
    assert line == (
        "SUMMARY file=inventory.xlsx rows=5 valid=4 invalid=1 warnings=10 imported=3 failed=1"
    )


def test_render_summary_line_before_submission():
    state = ImportState(
        step=ImportStep.PREVIEW_VALIDATING, file_name="inv.csv", outcomes=_outcomes(2, 0)
    )
    assert render_summary_line(state) == (
        "SUMMARY file=inv.csv rows=2 valid=2 invalid=0 warnings=0 imported=0 failed=0"
    )


def test_render_summary_line_without_file():
    line = render_summary_line(ImportState())
    assert SUMMARY_PATTERN.match(line)
    assert "file=- " in line


def test_success_message():
    assert success_message(ImportBatchResult(succeeded=4, failed=0)) == (
        "Successfully imported 4 equipment items!"
    )


def test_failure_message_lists_collaborator_errors():
    result = ImportBatchResult(
        succeeded=3,
        failed=2,
        errors=("Row 1: Serial number X already exists", "Row 4: Lab not found"),
    )
    assert failure_message(result) == (
        "2 items failed to import:\nRow 1: Serial number X already exists\nRow 4: Lab not found"
    )
    assert failure_message(ImportBatchResult(succeeded=3, failed=0)) is None
