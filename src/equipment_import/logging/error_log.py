from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord
from ..models.import_result import ImportBatchResult
from ..models.validation import ValidationOutcome

"""Error log buffering.

- JSON Lines, fixed schema (no extra keys)
- One ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC) per run, created on first flush
- Records are buffered and written in one go at the end of an import
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends JSON Lines to the run's file.

    Serial use only (one import in flight).
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record_validation(self, file: str, outcomes: Sequence[ValidationOutcome]) -> int:
        """Buffer one VALIDATION_ERROR record per error of each invalid row. Returns count added."""
        added = 0
        for outcome in outcomes:
            for message in outcome.errors:
                self.append(ErrorRecord.create(file, outcome.row_number, "VALIDATION_ERROR", message))
                added += 1
        return added

    def record_rejections(self, file: str, result: ImportBatchResult) -> int:
        """Buffer collaborator rejection reasons (row unknown at this layer -> -1)."""
        for message in result.errors:
            self.append(ErrorRecord.create(file, FILE_LEVEL_ROW, "IMPORT_REJECTED", message))
        return len(result.errors)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None when nothing was buffered."""
        if not self._records:
            return None  # 空なら作成しない
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
