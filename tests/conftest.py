# Shared pytest fixtures
from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pandas as pd
import pytest

from equipment_import.models import ApiConfig, Lab

LEGACY_HEADER = [
    "S.No",
    "Equipments",
    "Make",
    "System Description",
    "Qty",
    "Cost in Rs",
    "Date of Purchase",
    "Stock Register Page No",
]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("EQUIPMENT_API_URL", raising=False)
        monkeypatch.delenv("EQUIPMENT_API_TOKEN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """api:
  base_url: http://lab.test
  bulk_import_path: /api/equipment/bulk-import
  labs_path: /api/labs
  timeout: 5
limits:
  max_file_bytes: 1048576
  max_rows: 1000
defaults:
  fallback_lab_id: 7
  depreciation_rate: 0.8
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def labs() -> list[Lab]:
    return [Lab(id=3, name="CAD Lab"), Lab(id=5, name="Biology Lab")]


@pytest.fixture()
def legacy_rows() -> list[list[Any]]:
    """5 legacy inventory rows; the 3rd has no Equipments label."""
    return [
        [1, "Desktop System", "Dell", "Core i5, 4GB RAM", 2, "63,998 (2*31,999)", "08.11.2011", "12"],
        [2, "Projector", "Epson", "LCD 3000 lumens", 1, "45,500", "15.03.2014", "14"],
        [3, None, "HP", "LaserJet", 1, "18,250", "02.07.2016", "15"],
        [4, "Network Switch", "Cisco", "24 port", 1, "32,000", "21.01.2018", "18"],
        [5, "Pen Tablet", "Wacom", "Graphics tablet", 3, "21,000 (3*7,000)", "10.09.2019", "21"],
    ]


def make_excel(path: Path, header: list[str], rows: list[list[Any]], sheet: str = "Sheet1") -> Path:
    """Write a single-sheet workbook with ``header`` as its first row."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows, columns=header).to_excel(writer, sheet_name=sheet, index=False)
    return path


@pytest.fixture()
def legacy_excel(temp_workdir: Path, legacy_rows: list[list[Any]]) -> Path:
    return make_excel(temp_workdir / "data" / "inventory.xlsx", LEGACY_HEADER, legacy_rows)


class FakeApi:
    """Records requests made through httpx.MockTransport and answers them."""

    def __init__(self, bulk_response: httpx.Response | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.bulk_response = bulk_response
        self.labs_payload: list[dict[str, Any]] = [{"id": 3, "name": "CAD Lab"}]
        self.labs_response: httpx.Response | None = None

    @property
    def bulk_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/bulk-import")]

    def submitted_items(self, index: int = -1) -> list[dict[str, Any]]:
        return json.loads(self.bulk_requests[index].content)["equipmentData"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/bulk-import"):
            if self.bulk_response is not None:
                return self.bulk_response
            items = json.loads(request.content)["equipmentData"]
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "message": f"Import completed. {len(items)} items imported successfully, 0 failed.",
                    "data": {"success": len(items), "failed": 0, "errors": []},
                },
            )
        if request.url.path.endswith("/labs"):
            if self.labs_response is not None:
                return self.labs_response
            return httpx.Response(200, json={"success": True, "data": {"labs": self.labs_payload}})
        return httpx.Response(404, json={"success": False, "message": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture()
def api_factory() -> Callable[..., FakeApi]:
    """FakeApi constructor, for tests that need a canned bulk-import response."""
    return FakeApi


@pytest.fixture()
def api_config() -> ApiConfig:
    return ApiConfig(base_url="http://lab.test", timeout=5)


@pytest.fixture()
def make_client(api_config: ApiConfig, fake_api: FakeApi) -> Callable[..., Any]:
    from equipment_import.services.importer import ImportClient

    def _make(api: FakeApi | None = None, token: str | None = "test-token") -> ImportClient:
        return ImportClient(api_config, token=token, transport=(api or fake_api).transport())

    return _make
