from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""ImportBatchResult model.

Mirrors the ``data`` block the bulk-import endpoint returns:
``{"success": n, "failed": n, "errors": ["Row 2: ...", ...]}``.
The pipeline surfaces it verbatim; partial success is a normal outcome.
"""

__all__ = [
    "ImportBatchResult",
]


@dataclass(frozen=True)
class ImportBatchResult:
    succeeded: int
    failed: int
    errors: tuple[str, ...] = ()
    message: str | None = None  # collaborator の要約メッセージ

    @property
    def partial(self) -> bool:
        return self.failed > 0

    @staticmethod
    def from_response(body: dict[str, Any]) -> ImportBatchResult:
        """Build from a decoded bulk-import response body.

        Parameters:
            body: JSON body with ``message`` and a ``data`` block

        Returns:
            ImportBatchResult with counts defaulting to 0 when absent
        """
        data = body.get("data") or {}
        errors = data.get("errors") or []
        return ImportBatchResult(
            succeeded=int(data.get("success", 0) or 0),
            failed=int(data.get("failed", 0) or 0),
            errors=tuple(str(e) for e in errors),
            message=body.get("message"),
        )
