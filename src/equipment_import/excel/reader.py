from __future__ import annotations

import io
import mimetypes
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import (
    DecodeError,
    EmptySheetError,
    FileTooLargeError,
    TooManyRowsError,
    UnsupportedFileTypeError,
)
from ..models.equipment import RawRow

"""File acquisition and tabular decoding.

- Only the first sheet is read; its first row is the header.
- Fully blank rows are skipped.
- Cell values are normalized: NaN / blank -> None, strings stripped,
  date and datetime cells -> ISO YYYY-MM-DD strings.

CSV payloads are read as text (no numeric inference) so that values such as
"63,998 (2*31,999)" or "08.11.2011" reach the transformer untouched.
"""

__all__ = [
    "XLSX_CONTENT_TYPE",
    "XLS_CONTENT_TYPE",
    "CSV_CONTENT_TYPE",
    "ALLOWED_CONTENT_TYPES",
    "EMPTY_FILE_MESSAGE",
    "UploadedFile",
    "SheetData",
    "guess_content_type",
    "load_upload",
    "accept_upload",
    "decode_spreadsheet",
]

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_CONTENT_TYPE = "application/vnd.ms-excel"
CSV_CONTENT_TYPE = "text/csv"
ALLOWED_CONTENT_TYPES = frozenset({XLSX_CONTENT_TYPE, XLS_CONTENT_TYPE, CSV_CONTENT_TYPE})

EMPTY_FILE_MESSAGE = "The Excel file appears to be empty"

_EXTENSION_TYPES = {
    ".xlsx": XLSX_CONTENT_TYPE,
    ".xls": XLS_CONTENT_TYPE,
    ".csv": CSV_CONTENT_TYPE,
}


@dataclass(frozen=True)
class UploadedFile:
    """A file accepted for import, fully read into memory."""
    name: str
    content_type: str
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RawRow]  # 正規化済 (列名→値)


def guess_content_type(path: Path) -> str | None:
    """Declared content type of a file path, judged by its extension."""
    known = _EXTENSION_TYPES.get(path.suffix.lower())
    if known is not None:
        return known
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed


def accept_upload(
    name: str, payload: bytes, content_type: str | None, max_file_bytes: int | None = None
) -> UploadedFile:
    """Validate declared content type and size of an in-memory upload.

    Raises:
        UnsupportedFileTypeError: content type is not xlsx / xls / csv
        FileTooLargeError: payload exceeds ``max_file_bytes``
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFileTypeError(content_type)
    if max_file_bytes is not None and len(payload) > max_file_bytes:
        raise FileTooLargeError(len(payload), max_file_bytes)
    return UploadedFile(name=name, content_type=content_type, payload=payload)


def load_upload(path: Path, max_file_bytes: int | None = None) -> UploadedFile:
    """Read a spreadsheet file from disk after checking its type and size.

    The size is checked from the file metadata before reading so an oversized
    file is never loaded.
    """
    content_type = guess_content_type(path)
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFileTypeError(content_type)
    if max_file_bytes is not None:
        size = path.stat().st_size
        if size > max_file_bytes:
            raise FileTooLargeError(size, max_file_bytes)
    return accept_upload(path.name, path.read_bytes(), content_type, max_file_bytes)


def _normalize_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    if isinstance(value, datetime):  # pd.Timestamp も datetime のサブクラス
        if pd.isna(value):
            return None
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if hasattr(value, "item"):  # numpy scalar -> python scalar
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _read_frame(payload: bytes, content_type: str) -> tuple[pd.DataFrame, str | None]:
    """Parse the payload; returns the frame and the first sheet name (None for CSV)."""
    buffer = io.BytesIO(payload)
    if content_type == CSV_CONTENT_TYPE:
        return pd.read_csv(buffer, dtype=str, keep_default_na=False, skip_blank_lines=True), None
    engine = "openpyxl" if content_type == XLSX_CONTENT_TYPE else "xlrd"
    with pd.ExcelFile(buffer, engine=engine) as xls:
        # 先頭シートのみ / 1行目をヘッダ
        return xls.parse(0, header=0, dtype=object), str(xls.sheet_names[0])


def decode_spreadsheet(
    payload: bytes,
    content_type: str = XLSX_CONTENT_TYPE,
    *,
    sheet_name: str = "Sheet1",
    max_rows: int | None = None,
) -> SheetData:
    """Decode a spreadsheet payload into ordered RawRow mappings.

    Parameters
    ----------
    payload: file bytes
    content_type: one of ALLOWED_CONTENT_TYPES (selects CSV or Excel parsing)
    sheet_name: label reported for CSV payloads (Excel uses the real first sheet name)
    max_rows: data row ceiling (None = unlimited)

    Raises
    ------
    DecodeError: payload cannot be parsed as a spreadsheet
    EmptySheetError: the first sheet has no data rows
    TooManyRowsError: more than ``max_rows`` data rows
    """
    if not payload:
        raise EmptySheetError(EMPTY_FILE_MESSAGE)
    try:
        df, first_sheet = _read_frame(payload, content_type)
    except pd.errors.EmptyDataError as e:
        raise EmptySheetError(EMPTY_FILE_MESSAGE) from e
    except Exception as e:  # openpyxl / xlrd / csv parser の例外型は多様
        raise DecodeError(f"unable to parse spreadsheet: {e}") from e

    sheet_name = first_sheet or sheet_name
    columns = [str(c).strip() for c in df.columns]
    rows: list[RawRow] = []
    for raw in df.itertuples(index=False, name=None):
        row = {col: _normalize_cell(val) for col, val in zip(columns, raw, strict=False)}
        if all(v is None for v in row.values()):
            continue
        rows.append(row)

    if not rows:
        raise EmptySheetError(EMPTY_FILE_MESSAGE)
    if max_rows is not None and len(rows) > max_rows:
        raise TooManyRowsError(len(rows), max_rows)
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)
