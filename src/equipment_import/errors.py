"""Exception hierarchy for the equipment import pipeline.

Row-level validation problems are not exceptions: they are collected as
strings on ``ValidationOutcome``. Everything here aborts the current import
attempt.
"""

from __future__ import annotations

__all__ = [
    "ImportPipelineError",
    "FileAcquisitionError",
    "UnsupportedFileTypeError",
    "FileTooLargeError",
    "DecodeError",
    "EmptySheetError",
    "TooManyRowsError",
    "NoValidRowsError",
    "ImportSubmissionError",
]


class ImportPipelineError(Exception):
    """Base exception for all import pipeline errors."""


class FileAcquisitionError(ImportPipelineError):
    """The uploaded file was rejected before decoding."""


class UnsupportedFileTypeError(FileAcquisitionError):
    """Declared content type is not a spreadsheet or CSV type."""

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(f"unsupported content type: {content_type or '<unknown>'}")


class FileTooLargeError(FileAcquisitionError):
    """Payload exceeds the configured size ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"file size {size} bytes exceeds limit of {limit} bytes")


class DecodeError(ImportPipelineError):
    """Payload could not be parsed as a spreadsheet."""


class EmptySheetError(DecodeError):
    """The first sheet yields zero data rows."""


class TooManyRowsError(DecodeError):
    """The first sheet yields more data rows than allowed."""

    def __init__(self, rows: int, limit: int) -> None:
        self.rows = rows
        self.limit = limit
        super().__init__(f"sheet has {rows} data rows, maximum is {limit}")


class NoValidRowsError(ImportPipelineError):
    """Every row failed validation; nothing is submitted."""


class ImportSubmissionError(ImportPipelineError):
    """Bulk-import request failed at the transport or collaborator level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
