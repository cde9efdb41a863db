from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .equipment import Category, ConditionStatus, EquipmentStatus, Lab, is_blank

"""Central field default table.

Every implicit default used by the transformer and the importer lives here as
one row of field -> default value -> triggering condition, so that both stages
resolve a missing value the same way.
"""

__all__ = [
    "DefaultContext",
    "FieldDefault",
    "FIELD_DEFAULTS",
    "CANONICAL_ROW_DEFAULTS",
    "default_lab_id",
    "parse_quantity",
    "apply_defaults",
]

DEFAULT_FALLBACK_LAB_ID = 1


@dataclass(frozen=True)
class DefaultContext:
    """Inputs a default may depend on."""
    row_index: int  # 1-based
    labs: Sequence[Lab] = ()
    fallback_lab_id: int = DEFAULT_FALLBACK_LAB_ID


def default_lab_id(labs: Sequence[Lab], fallback_lab_id: int = DEFAULT_FALLBACK_LAB_ID) -> int:
    """First lab of the reference list, or the configured fallback when it is empty."""
    if labs:
        return labs[0].id
    return fallback_lab_id


def parse_quantity(value: Any) -> int | None:
    """Positive integer quantity, or None when the cell is blank / not a positive whole number."""
    if is_blank(value) or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or number < 1 or not number.is_integer():  # 0 / 小数
        return None
    return int(number)


def _not_positive_int(value: Any) -> bool:
    return parse_quantity(value) is None


@dataclass(frozen=True)
class FieldDefault:
    field: str
    default: Callable[[DefaultContext], Any]
    applies: Callable[[Any], bool] = is_blank
    note: str = ""

    def resolve(self, value: Any, ctx: DefaultContext) -> Any:
        if self.applies(value):
            return self.default(ctx)
        return value


FIELD_DEFAULTS: tuple[FieldDefault, ...] = (
    FieldDefault("name", lambda ctx: "Unknown Equipment", note="name missing"),
    FieldDefault("serial_number", lambda ctx: f"AUTO-{ctx.row_index}", note="serial missing"),
    FieldDefault("category", lambda ctx: Category.LAB_EQUIPMENT.value, note="category missing"),
    FieldDefault("status", lambda ctx: EquipmentStatus.AVAILABLE.value, note="status missing"),
    FieldDefault(
        "condition_status", lambda ctx: ConditionStatus.GOOD.value, note="condition missing"
    ),
    FieldDefault(
        "lab_id",
        lambda ctx: default_lab_id(ctx.labs, ctx.fallback_lab_id),
        note="lab missing: first known lab, else configured fallback",
    ),
    FieldDefault(
        "quantity", lambda ctx: 1, applies=_not_positive_int, note="quantity missing or not positive"
    ),
)

# canonical 行の変換時に適用する列 (lab_id は検証で警告 → 送信時に補完)
CANONICAL_ROW_DEFAULTS: frozenset[str] = frozenset(
    {"name", "serial_number", "category", "status", "condition_status", "quantity"}
)


def apply_defaults(
    values: dict[str, Any], ctx: DefaultContext, fields: Iterable[str] | None = None
) -> dict[str, Any]:
    """Return a copy of ``values`` with table defaults applied.

    Parameters:
        values: field name -> current value
        ctx: row index / labs / fallback used by the defaults
        fields: restrict to these field names (None = whole table)
    """
    selected = set(fields) if fields is not None else None
    out = dict(values)
    for entry in FIELD_DEFAULTS:
        if selected is not None and entry.field not in selected:
            continue
        out[entry.field] = entry.resolve(out.get(entry.field), ctx)
    return out
