from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

"""Equipment domain models for the spreadsheet import tool.

RawRow is the decoder output (one mapping per spreadsheet row). EquipmentCandidate
is the canonical record produced by the row transformer and read-only afterwards.
Lab is the caller-supplied reference entry that lab_id values are checked against.
"""

__all__ = [
    "RawRow",
    "Category",
    "EquipmentStatus",
    "ConditionStatus",
    "Lab",
    "EquipmentCandidate",
    "ALLOWED_CATEGORIES",
    "ALLOWED_STATUSES",
    "ALLOWED_CONDITIONS",
    "is_blank",
    "to_decimal",
    "to_lab_id",
]

# 列ラベル -> セル値 (順序保持)
RawRow = dict[str, Any]


class Category(Enum):
    """Equipment categories accepted by the bulk-import endpoint."""
    COMPUTER = "computer"
    PROJECTOR = "projector"
    PRINTER = "printer"
    MICROSCOPE = "microscope"
    LAB_EQUIPMENT = "lab_equipment"
    NETWORK_EQUIPMENT = "network_equipment"


class EquipmentStatus(Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class ConditionStatus(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"


ALLOWED_CATEGORIES: tuple[str, ...] = tuple(c.value for c in Category)
ALLOWED_STATUSES: tuple[str, ...] = tuple(s.value for s in EquipmentStatus)
ALLOWED_CONDITIONS: tuple[str, ...] = tuple(c.value for c in ConditionStatus)


@dataclass(frozen=True)
class Lab:
    """Reference lab entry supplied by the caller before validation."""
    id: int
    name: str | None = None

    @staticmethod
    def from_api(data: dict[str, Any]) -> Lab:
        """Build a Lab from a labs listing object (``{"id": 3, "name": ...}``)."""
        return Lab(id=int(data["id"]), name=data.get("name"))


@dataclass(frozen=True)
class EquipmentCandidate:
    """Canonical equipment record produced by the row transformer.

    Fields mirror the equipment columns of the lab-management API. Values are
    kept as transformed (lab_id may still be a raw cell value for canonical rows);
    coercion to wire types happens in the importer. ``extra`` carries columns of
    a canonical row that have no field here, unchanged.
    """
    name: str | None
    serial_number: str | None
    category: str | None
    description: str | None = None
    model: str | None = None
    manufacturer: str | None = None
    lab_id: Any = None
    location_details: str | None = None
    status: str | None = None
    condition_status: str | None = None
    purchase_price: Any = None  # Decimal (legacy) / 生セル値 (canonical)
    current_value: Any = None
    purchase_date: str | None = None  # ISO YYYY-MM-DD
    warranty_expiry: str | None = None
    quantity: int = 1
    stock_register_page: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Flatten into a plain dict, ``extra`` columns merged after the known fields."""
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "serial_number": self.serial_number,
            "model": self.model,
            "manufacturer": self.manufacturer,
            "category": self.category,
            "lab_id": self.lab_id,
            "location_details": self.location_details,
            "status": self.status,
            "condition_status": self.condition_status,
            "purchase_price": self.purchase_price,
            "current_value": self.current_value,
            "purchase_date": self.purchase_date,
            "warranty_expiry": self.warranty_expiry,
            "quantity": self.quantity,
            "stock_register_page": self.stock_register_page,
        }
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def to_decimal(value: Any) -> Decimal | None:
    """Best-effort numeric coercion used for price fields. None when not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).strip())
    except ArithmeticError:
        return None
    if not result.is_finite():
        return None
    return result


def to_lab_id(value: Any) -> int | None:
    """Positive whole-number lab id ("3", 3, 3.0), else None."""
    number = to_decimal(value)
    if number is None or number != number.to_integral_value() or number < 1:
        return None
    return int(number)
