from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from ..errors import (
    DecodeError,
    EmptySheetError,
    FileTooLargeError,
    ImportPipelineError,
    ImportSubmissionError,
    NoValidRowsError,
    TooManyRowsError,
    UnsupportedFileTypeError,
)
from ..excel.reader import EMPTY_FILE_MESSAGE, UploadedFile, decode_spreadsheet, load_upload
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.equipment import Lab
from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord
from ..models.import_state import ImportState, ImportStep
from .importer import GENERIC_IMPORT_FAILURE, NO_VALID_ROWS_MESSAGE, ImportClient, submit_valid
from .progress import ImportProgress
from .summary import failure_message, success_message
from .transformer import transform_rows
from .validator import validate_candidates

"""Import pipeline orchestration.

Stages are explicit state transitions:

    start()      -> UPLOADING
    preview()    -> PREVIEW_VALIDATING  (decode, transform, validate)
    run_import() -> IMPORTING           (submit valid rows, collect result)
    reset()      -> UPLOADING           (discard in-flight state)

Each stage returns a new ImportState; nothing is mutated in place. Fatal
errors (decode failures, no valid rows, submission failures) are raised to the
caller, which decides whether to reset.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProgressCallback",
    "UNSUPPORTED_FILE_MESSAGE",
    "READ_ERROR_MESSAGE",
    "start",
    "reset",
    "preview",
    "run_import",
    "user_message",
    "process_file",
]

ProgressCallback = Callable[[ImportState], None]

UNSUPPORTED_FILE_MESSAGE = "Please select a valid Excel file (.xlsx, .xls) or CSV file"
READ_ERROR_MESSAGE = "Error reading file. Please ensure it's a valid Excel file."


def _notify(state: ImportState, on_progress: ProgressCallback | None) -> ImportState:
    if on_progress is not None:
        on_progress(state)
    return state


def start() -> ImportState:
    """Initial state: waiting for a file."""
    return ImportState(step=ImportStep.UPLOADING, progress=0)


def reset(error_message: str | None = None) -> ImportState:
    """Back to file selection, discarding outcomes and results of the previous attempt."""
    return replace(start(), error_message=error_message)


def preview(
    state: ImportState,
    upload: UploadedFile,
    labs: Sequence[Lab] = (),
    config: ImportConfig | None = None,
    *,
    year: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> ImportState:
    """Decode, transform and validate an accepted upload.

    Parameters:
        state: current state (any step; a new preview replaces earlier data)
        upload: accepted file (see excel.reader.accept_upload / load_upload)
        labs: reference labs supplied by the caller
        config: limits and defaults
        year: calendar year for synthesized legacy serials
        on_progress: called with each intermediate state

    Returns:
        PREVIEW_VALIDATING state holding one ValidationOutcome per data row

    Raises:
        DecodeError: unparsable payload, empty sheet or too many rows
    """
    config = config or ImportConfig()
    state = _notify(
        state.advance(
            ImportStep.PREVIEW_VALIDATING,
            progress=20,
            file_name=upload.name,
            outcomes=(),
            result=None,
            success_message=None,
            error_message=None,
            started_at=datetime.now(UTC),
            finished_at=None,
        ),
        on_progress,
    )

    sheet = decode_spreadsheet(
        upload.payload, upload.content_type, max_rows=config.limits.max_rows
    )
    logger.info("decoded file=%s sheet=%s rows=%d", upload.name, sheet.sheet_name, len(sheet.rows))
    state = _notify(replace(state, progress=50), on_progress)

    candidates = transform_rows(sheet.rows, labs, year=year, defaults=config.defaults)
    state = _notify(replace(state, progress=80), on_progress)

    outcomes = validate_candidates(candidates, labs)
    state = replace(state, progress=100, outcomes=tuple(outcomes))
    summary = state.summary
    logger.info(
        "validation file=%s valid=%d invalid=%d warnings=%d",
        upload.name,
        summary.valid,
        summary.invalid,
        summary.warnings,
    )
    return _notify(state, on_progress)


def run_import(
    state: ImportState,
    client: ImportClient,
    labs: Sequence[Lab] = (),
    config: ImportConfig | None = None,
    *,
    on_progress: ProgressCallback | None = None,
) -> ImportState:
    """Submit the valid rows of a previewed state.

    Returns:
        IMPORTING state with the collaborator result and user messages.
        Partial success sets both success_message and error_message.

    Raises:
        ImportPipelineError: state is not a validated preview
        NoValidRowsError: every row failed validation (no request is made)
        ImportSubmissionError: transport / collaborator failure
    """
    if state.step is not ImportStep.PREVIEW_VALIDATING:
        raise ImportPipelineError(f"cannot import from step {state.step.value}")
    state = _notify(
        state.advance(ImportStep.IMPORTING, progress=25, error_message=None), on_progress
    )
    result = submit_valid(state.outcomes, client, labs, config)
    state = _notify(replace(state, progress=75), on_progress)
    state = replace(
        state,
        progress=100,
        result=result,
        success_message=success_message(result),
        error_message=failure_message(result),
        finished_at=datetime.now(UTC),
    )
    return _notify(state, on_progress)


def user_message(error: ImportPipelineError) -> str:
    """User-facing text for a fatal pipeline error."""
    if isinstance(error, UnsupportedFileTypeError):
        return UNSUPPORTED_FILE_MESSAGE
    if isinstance(error, FileTooLargeError):
        return f"File is too large. Maximum file size: {error.limit // (1024 * 1024)}MB"
    if isinstance(error, EmptySheetError):
        return EMPTY_FILE_MESSAGE
    if isinstance(error, TooManyRowsError):
        return f"Too many rows ({error.rows}). Maximum rows: {error.limit}"
    if isinstance(error, DecodeError):
        return READ_ERROR_MESSAGE
    if isinstance(error, NoValidRowsError):
        return NO_VALID_ROWS_MESSAGE
    return str(error) or GENERIC_IMPORT_FAILURE


def process_file(
    path: Path,
    client: ImportClient | None,
    labs: Sequence[Lab] = (),
    config: ImportConfig | None = None,
    *,
    dry_run: bool = False,
    year: int | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportState:
    """Run the whole flow for one file on disk.

    Fatal errors are turned into a reset state carrying the user message (and
    a file-level error record); they are not raised. With ``dry_run`` (or no
    client) the flow stops after validation.
    """
    config = config or ImportConfig()
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    state = start()

    with ImportProgress(path.name) as progress:
        try:
            upload = load_upload(path, max_file_bytes=config.limits.max_file_bytes)
            state = preview(state, upload, labs, config, year=year, on_progress=progress.update)
            error_log.record_validation(path.name, state.outcomes)
            summary = state.summary
            progress.set_postfix(valid=summary.valid, invalid=summary.invalid)
            if dry_run or client is None:
                logger.info("dry run: %d rows would be submitted", summary.valid)
                return state
            state = run_import(state, client, labs, config, on_progress=progress.update)
            if state.result is not None:
                error_log.record_rejections(path.name, state.result)
        except (ImportPipelineError, OSError) as e:
            if isinstance(e, OSError):
                message = READ_ERROR_MESSAGE
                error_type = "FILE_READ_ERROR"
            else:
                message = user_message(e)
                error_type = _error_type(e)
            error_log.append(ErrorRecord.create(path.name, FILE_LEVEL_ROW, error_type, str(e)))
            logger.error("import failed file=%s: %s", path.name, e)
            # 検証結果は保持したままファイル選択状態へ戻す (SUMMARY 用)
            return replace(reset(message), file_name=path.name, outcomes=state.outcomes)
        finally:
            try:
                log_path = error_log.flush()
            except OSError as flush_e:
                logger.warning("failed to write error log: %s", flush_e)
            else:
                if log_path is not None:
                    logger.info("error log written: %s", log_path)

    return state


def _error_type(error: ImportPipelineError) -> str:
    if isinstance(error, (UnsupportedFileTypeError, FileTooLargeError)):
        return "FILE_REJECTED"
    if isinstance(error, DecodeError):
        return "DECODE_ERROR"
    if isinstance(error, NoValidRowsError):
        return "NO_VALID_ROWS"
    if isinstance(error, ImportSubmissionError):
        return "SUBMISSION_ERROR"
    return "PROCESSING_ERROR"
