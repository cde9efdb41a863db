from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import fields
from datetime import date
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from ..models.config_models import DefaultsConfig
from ..models.defaults import (
    CANONICAL_ROW_DEFAULTS,
    DefaultContext,
    apply_defaults,
    default_lab_id,
    parse_quantity,
)
from ..models.equipment import Category, EquipmentCandidate, Lab, RawRow, is_blank

"""Row transformer: RawRow -> EquipmentCandidate.

Two input shapes are supported and the choice is made once per row:

- LEGACY: pre-existing inventory sheets (S.No / Equipments / Make / System
  Description / Qty / Cost in Rs / Date of Purchase / Stock Register Page No).
  Category, serial number and prices are inferred from loosely structured cells.
- CANONICAL: rows already using the API field names; values pass through with
  the defaults of the central field default table.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "RowShape",
    "LEGACY_COLUMNS",
    "LEGACY_SIGNATURE",
    "CATEGORY_KEYWORDS",
    "detect_row_shape",
    "infer_category",
    "parse_cost",
    "parse_legacy_quantity",
    "parse_legacy_date",
    "make_serial_number",
    "transform_row",
    "transform_rows",
]

COL_SNO = "S.No"
COL_EQUIPMENTS = "Equipments"
COL_MAKE = "Make"
COL_DESCRIPTION = "System Description"
COL_QTY = "Qty"
COL_COST = "Cost in Rs"
COL_PURCHASE_DATE = "Date of Purchase"
COL_STOCK_PAGE = "Stock Register Page No"

LEGACY_COLUMNS: tuple[str, ...] = (
    COL_SNO,
    COL_EQUIPMENTS,
    COL_MAKE,
    COL_DESCRIPTION,
    COL_QTY,
    COL_COST,
    COL_PURCHASE_DATE,
    COL_STOCK_PAGE,
)
LEGACY_SIGNATURE: frozenset[str] = frozenset({COL_SNO, COL_EQUIPMENTS, COL_MAKE})

# 順序が優先順位 (最初に一致したものを採用)
CATEGORY_KEYWORDS: tuple[tuple[str, Category], ...] = (
    ("desktop", Category.COMPUTER),
    ("computer", Category.COMPUTER),
    ("projector", Category.PROJECTOR),
    ("display", Category.PROJECTOR),
    ("printer", Category.PRINTER),
    ("network", Category.NETWORK_EQUIPMENT),
    ("switch", Category.NETWORK_EQUIPMENT),
    ("microscope", Category.MICROSCOPE),
)

_LEADING_NUMBER = re.compile(r"^\s*([0-9][0-9,\s]*(?:\.[0-9]+)?)")
_LEADING_INTEGER = re.compile(r"^\s*([0-9]+)(?![0-9.,])")
_CANONICAL_FIELDS = frozenset(f.name for f in fields(EquipmentCandidate)) - {"extra"}


class RowShape(Enum):
    LEGACY = "legacy"
    CANONICAL = "canonical"


def detect_row_shape(row: RawRow) -> RowShape:
    """LEGACY iff the S.No, Equipments and Make columns are all present.

    Presence means the column exists in the sheet, regardless of the cell
    value, so a legacy row with a blank Equipments cell stays legacy.
    """
    if LEGACY_SIGNATURE.issubset(row.keys()):
        return RowShape.LEGACY
    return RowShape.CANONICAL


def infer_category(label: Any) -> str:
    """Case-insensitive keyword lookup of an equipment label."""
    text = "" if label is None else str(label).lower()
    for keyword, category in CATEGORY_KEYWORDS:
        if keyword in text:
            return category.value
    return Category.LAB_EQUIPMENT.value


def parse_cost(value: Any) -> Decimal:
    """Parse a legacy cost cell.

    Only the leading numeric run before any parenthetical note is used and
    thousands separators are dropped: "63,998 (2*31,999)" -> 63998.
    Unparsable values give 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, (int, float, Decimal)):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return Decimal(0)
        return number if number.is_finite() and number >= 0 else Decimal(0)
    head = str(value).split("(", 1)[0]
    match = _LEADING_NUMBER.match(head)
    if not match:
        return Decimal(0)
    digits = re.sub(r"[,\s]", "", match.group(1))
    try:
        return Decimal(digits)
    except InvalidOperation:
        return Decimal(0)


def parse_legacy_quantity(value: Any) -> int | None:
    """Parse a legacy Qty cell.

    Numeric cells follow the canonical rule; text cells use the leading whole
    number, so "2 nos" -> 2. "1.5" and "0" give None.
    """
    quantity = parse_quantity(value)
    if quantity is not None or not isinstance(value, str):
        return quantity
    match = _LEADING_INTEGER.match(value)
    return parse_quantity(match.group(1)) if match else None


def parse_legacy_date(value: Any) -> str | None:
    """DD.MM.YYYY -> YYYY-MM-DD; anything not splitting into three dot parts -> None.

    Cells the decoder already turned into ISO dates are returned as they are.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", text):
        return text
    parts = text.split(".")
    if len(parts) != 3:
        return None
    day, month, year = (p.strip() for p in parts)
    if not (day.isdigit() and month.isdigit() and year.isdigit()):
        return None
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def make_serial_number(manufacturer: Any, sequence: Any, year: int) -> str:
    """MAKE-001-2024 style serial for legacy rows that carry none."""
    make = "" if is_blank(manufacturer) else str(manufacturer).strip().upper()
    make = re.sub(r"\s+", "-", make) or "EQ"
    seq = parse_quantity(sequence)
    seq_text = f"{seq:03d}" if seq is not None else str(sequence or "0").zfill(3)
    return f"{make}-{seq_text}-{year}"


def _text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def _transform_legacy(
    row: RawRow, index: int, labs: Sequence[Lab], year: int, defaults: DefaultsConfig
) -> EquipmentCandidate:
    label = row.get(COL_EQUIPMENTS)
    manufacturer = _text(row.get(COL_MAKE))
    sequence = row.get(COL_SNO)
    if is_blank(sequence):
        sequence = index
    quantity = parse_legacy_quantity(row.get(COL_QTY)) or 1
    cost = parse_cost(row.get(COL_COST))
    purchase_price = _floor(cost / quantity)
    current_value = _floor(purchase_price * Decimal(str(defaults.depreciation_rate)))
    return EquipmentCandidate(
        name=_text(label),
        description=_text(row.get(COL_DESCRIPTION)),
        serial_number=make_serial_number(manufacturer, sequence, year),
        model=None,
        manufacturer=manufacturer,
        category=infer_category(label),
        lab_id=default_lab_id(labs, defaults.fallback_lab_id),
        location_details=None,
        status="available",
        condition_status="good",
        purchase_price=purchase_price,
        current_value=current_value,
        purchase_date=parse_legacy_date(row.get(COL_PURCHASE_DATE)),
        warranty_expiry=None,
        quantity=quantity,
        stock_register_page=_text(row.get(COL_STOCK_PAGE)),
    )


def _transform_canonical(
    row: RawRow, index: int, labs: Sequence[Lab], defaults: DefaultsConfig
) -> EquipmentCandidate:
    known = {k: v for k, v in row.items() if k in _CANONICAL_FIELDS}
    extra = {k: v for k, v in row.items() if k not in _CANONICAL_FIELDS}
    ctx = DefaultContext(row_index=index, labs=labs, fallback_lab_id=defaults.fallback_lab_id)
    values = apply_defaults(known, ctx, fields=CANONICAL_ROW_DEFAULTS)
    for key in ("name", "serial_number", "category", "status", "condition_status"):
        if isinstance(values.get(key), str):
            values[key] = values[key].strip()
    values["quantity"] = parse_quantity(values.get("quantity")) or 1
    return EquipmentCandidate(**values, extra=extra)


def transform_row(
    row: RawRow,
    index: int,
    labs: Sequence[Lab] = (),
    *,
    year: int | None = None,
    defaults: DefaultsConfig | None = None,
) -> EquipmentCandidate:
    """Map one RawRow to one EquipmentCandidate.

    Parameters:
        row: decoded row (column label -> cell value)
        index: 1-based row index (used for AUTO-n serials and legacy fallbacks)
        labs: reference labs; the first one is the legacy default lab
        year: calendar year for synthesized serials (default: current year)
        defaults: fallback lab id / depreciation rate
    """
    defaults = defaults or DefaultsConfig()
    shape = detect_row_shape(row)
    if shape is RowShape.LEGACY:
        return _transform_legacy(row, index, labs, year or date.today().year, defaults)
    return _transform_canonical(row, index, labs, defaults)


def transform_rows(
    rows: Sequence[RawRow],
    labs: Sequence[Lab] = (),
    *,
    year: int | None = None,
    defaults: DefaultsConfig | None = None,
) -> list[EquipmentCandidate]:
    """Transform a decoded sheet. Deterministic for fixed ``year`` and ``labs``."""
    year = year or date.today().year
    candidates = [
        transform_row(row, i, labs, year=year, defaults=defaults)
        for i, row in enumerate(rows, start=1)
    ]
    legacy = sum(1 for r in rows if detect_row_shape(r) is RowShape.LEGACY)
    logger.debug("transformed rows=%d legacy=%d canonical=%d", len(rows), legacy, len(rows) - legacy)
    return candidates
