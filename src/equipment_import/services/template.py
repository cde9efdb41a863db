from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from .transformer import LEGACY_COLUMNS

"""Downloadable import template.

Sample rows in the legacy inventory layout, documenting the expected input
shape for users. The pipeline never reads this file back specially; it is an
ordinary legacy-format sheet.
"""

__all__ = [
    "TEMPLATE_SHEET_NAME",
    "TEMPLATE_FILE_NAME",
    "SAMPLE_ROWS",
    "template_frame",
    "write_template",
]

TEMPLATE_SHEET_NAME = "Equipment Template"
TEMPLATE_FILE_NAME = "equipment_template.xlsx"

SAMPLE_ROWS: list[dict[str, Any]] = [
    {
        "S.No": 1,
        "Equipments": "Desktop System",
        "Make": "Dell",
        "System Description": "Intel Core i5 / 4GB RAM / 500GB HDD / 18.5\" monitor",
        "Qty": 2,
        "Cost in Rs": "63,998 (2*31,999)",
        "Date of Purchase": "08.11.2011",
        "Stock Register Page No": "12",
    },
    {
        "S.No": 2,
        "Equipments": "Projector",
        "Make": "Epson",
        "System Description": "LCD projector 3000 lumens with ceiling mount",
        "Qty": 1,
        "Cost in Rs": "45,500",
        "Date of Purchase": "15.03.2014",
        "Stock Register Page No": "14",
    },
    {
        "S.No": 3,
        "Equipments": "Laser Printer",
        "Make": "HP",
        "System Description": "LaserJet monochrome, duplex",
        "Qty": 1,
        "Cost in Rs": "18,250",
        "Date of Purchase": "02.07.2016",
        "Stock Register Page No": "15",
    },
    {
        "S.No": 4,
        "Equipments": "Network Switch",
        "Make": "Cisco",
        "System Description": "24 port managed switch",
        "Qty": 1,
        "Cost in Rs": "32,000",
        "Date of Purchase": "21.01.2018",
        "Stock Register Page No": "18",
    },
    {
        "S.No": 5,
        "Equipments": "Pen Tablet",
        "Make": "Wacom",
        "System Description": "Graphics tablet with stylus",
        "Qty": 3,
        "Cost in Rs": "21,000 (3*7,000)",
        "Date of Purchase": "10.09.2019",
        "Stock Register Page No": "21",
    },
]


def template_frame() -> pd.DataFrame:
    return pd.DataFrame(SAMPLE_ROWS, columns=list(LEGACY_COLUMNS))


def write_template(path: Path) -> Path:
    """Write the template workbook; a directory path gets the default file name."""
    if path.is_dir():
        path = path / TEMPLATE_FILE_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        template_frame().to_excel(writer, sheet_name=TEMPLATE_SHEET_NAME, index=False)
    return path
