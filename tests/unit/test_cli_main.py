from __future__ import annotations

import importlib
from pathlib import Path

import pytest

from equipment_import.cli import main as cli_main
from equipment_import.logging.init import reset_logging
from equipment_import.services.importer import ImportClient


@pytest.fixture(autouse=True)
def _clean_logging():
    # Reset logging state so the handler binds to the captured stdout
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def patched_client(monkeypatch, fake_api):
    """Route the CLI's ImportClient through the fake API transport."""
    def _factory(api):
        return ImportClient(api, transport=fake_api.transport())

    cli_module = importlib.import_module("equipment_import.cli.__main__")
    monkeypatch.setattr(cli_module, "ImportClient", _factory)
    return fake_api


def test_cli_template(temp_workdir: Path, capsys):
    code = cli_main(["--template", str(temp_workdir)])
    out = capsys.readouterr().out
    assert code == 0
    assert (temp_workdir / "equipment_template.xlsx").exists()
    assert "INFO template written:" in out


def test_cli_no_file(write_config, capsys):
    code = cli_main([])
    assert code == 1
    assert "ERROR no input file given" in capsys.readouterr().out


def test_cli_config_missing(legacy_excel: Path, capsys):
    code = cli_main([str(legacy_excel), "--config", "config/none.yml"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config file not found" in out


def test_cli_file_missing(write_config, capsys):
    code = cli_main(["data/missing.xlsx"])
    assert code == 1
    assert "ERROR file not found:" in capsys.readouterr().out


def test_cli_dry_run_with_lab_ids(write_config, legacy_excel: Path, capsys, patched_client):
    code = cli_main([str(legacy_excel), "--dry-run", "--lab-ids", "3,5", "--year", "2024"])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY file=inventory.xlsx rows=5 valid=4 invalid=1" in out
    assert "imported=0 failed=0" in out
    assert patched_client.requests == []


def test_cli_import_with_fetched_labs(write_config, legacy_excel: Path, capsys, patched_client, monkeypatch):
    monkeypatch.setenv("EQUIPMENT_API_TOKEN", "t0ken")
    code = cli_main([str(legacy_excel), "--year", "2024"])
    out = capsys.readouterr().out
    # 1 行が検証エラーなので部分失敗
    assert code == 2
    assert "INFO labs loaded: 1" in out
    assert "INFO Successfully imported 4 equipment items!" in out
    assert "imported=4 failed=0" in out
    bulk = patched_client.bulk_requests
    assert len(bulk) == 1
    assert bulk[0].headers["Authorization"] == "Bearer t0ken"
    items = patched_client.submitted_items()
    assert [i["serial_number"] for i in items] == [
        "DELL-001-2024",
        "EPSON-002-2024",
        "CISCO-004-2024",
        "WACOM-005-2024",
    ]
    assert {i["lab_id"] for i in items} == {3}


def test_cli_all_rows_imported(write_config, temp_workdir: Path, capsys, patched_client):
    csv = temp_workdir / "data" / "canonical.csv"
    csv.write_text(
        "name,serial_number,category,lab_id,model,manufacturer,description\n"
        "Nikon Eclipse E200,NIKON-001,microscope,3,E200,Nikon,Teaching microscope\n"
        "Epson EB-X41,EPSON-001,projector,3,EB-X41,Epson,Ceiling projector\n",
        encoding="utf-8",
    )
    code = cli_main([str(csv), "--lab-ids", "3"])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY file=canonical.csv rows=2 valid=2 invalid=0 warnings=0 imported=2 failed=0" in out


def test_cli_empty_file_is_fatal(write_config, temp_workdir: Path, capsys, patched_client):
    csv = temp_workdir / "data" / "empty.csv"
    csv.write_text("name,category\n", encoding="utf-8")
    code = cli_main([str(csv), "--lab-ids", "3"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR The Excel file appears to be empty" in out
    assert patched_client.bulk_requests == []


def test_cli_inspect_data(write_config, legacy_excel: Path, capsys):
    code = cli_main([str(legacy_excel), "--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: inventory.xlsx" in out
    assert "shape=legacy rows=5" in out


def test_cli_debug_mode(write_config, legacy_excel: Path, capsys):
    cli_main([str(legacy_excel), "--dry-run", "--lab-ids", "3", "--debug"])
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
