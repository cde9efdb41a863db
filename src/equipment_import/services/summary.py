from __future__ import annotations

from ..models.import_result import ImportBatchResult
from ..models.import_state import ImportState

"""Summary line rendering and user-facing messages.

SUMMARY line format:
SUMMARY file={name} rows={total} valid={valid} invalid={invalid} warnings={warnings}
imported={succeeded} failed={failed}
"""

__all__ = [
    "render_summary_line",
    "success_message",
    "failure_message",
]


def success_message(result: ImportBatchResult) -> str:
    return f"Successfully imported {result.succeeded} equipment items!"


def failure_message(result: ImportBatchResult) -> str | None:
    """Message for rows the collaborator rejected, None when it rejected none."""
    if result.failed <= 0:
        return None
    return f"{result.failed} items failed to import:\n" + "\n".join(result.errors)


def render_summary_line(state: ImportState) -> str:
    """Render the SUMMARY line for a finished (or aborted) import.

    Examples:
        >>> from equipment_import.models import ImportState
        >>> render_summary_line(ImportState(file_name="inv.xlsx"))
        'SUMMARY file=inv.xlsx rows=0 valid=0 invalid=0 warnings=0 imported=0 failed=0'
    """
    summary = state.summary
    imported = state.result.succeeded if state.result else 0
    # 送信前に中断した場合も失敗数は collaborator の値のみ
    failed = state.result.failed if state.result else 0
    return (
        f"SUMMARY file={state.file_name or '-'} "
        f"rows={summary.total} "
        f"valid={summary.valid} "
        f"invalid={summary.invalid} "
        f"warnings={summary.warnings} "
        f"imported={imported} "
        f"failed={failed}"
    )
