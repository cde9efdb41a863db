from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from equipment_import.errors import ImportSubmissionError, NoValidRowsError
from equipment_import.models import (
    DefaultsConfig,
    EquipmentCandidate,
    ImportConfig,
    Lab,
    ValidationOutcome,
)
from equipment_import.services.importer import (
    GENERIC_IMPORT_FAILURE,
    NO_VALID_ROWS_MESSAGE,
    build_payload,
    submit_valid,
)
from equipment_import.services.validator import validate_candidates


def _outcome(row: int, *, errors: tuple[str, ...] = (), **fields: object) -> ValidationOutcome:
    values: dict[str, object] = {"name": f"Item {row}", "serial_number": f"SN-{row}", "category": "computer"}
    values.update(fields)
    return ValidationOutcome(row_number=row, candidate=EquipmentCandidate(**values), errors=errors)  # type: ignore[arg-type]


def test_submit_valid_sends_only_valid_rows(make_client, fake_api, labs):
    outcomes = [_outcome(1), _outcome(2, errors=("Name is required",)), _outcome(3)]
    with make_client() as client:
        result = submit_valid(outcomes, client, labs)

    assert len(fake_api.bulk_requests) == 1
    request = fake_api.bulk_requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://lab.test/api/equipment/bulk-import"
    assert request.headers["Authorization"] == "Bearer test-token"
    items = fake_api.submitted_items()
    assert [i["serial_number"] for i in items] == ["SN-1", "SN-3"]
    assert result.succeeded == 2
    assert result.failed == 0
    assert not result.partial


def test_submit_valid_without_token_has_no_auth_header(make_client, fake_api):
    with make_client(token=None) as client:
        submit_valid([_outcome(1)], client)
    assert "Authorization" not in fake_api.bulk_requests[0].headers


def test_submit_valid_no_valid_rows_makes_no_request(make_client, fake_api):
    outcomes = [_outcome(1, errors=("Name is required",))]
    with make_client() as client, pytest.raises(NoValidRowsError) as e:
        submit_valid(outcomes, client)
    assert str(e.value) == NO_VALID_ROWS_MESSAGE
    assert fake_api.requests == []


def test_partial_rejection_is_a_result_not_an_error(make_client, api_factory):
    api = api_factory(
        bulk_response=httpx.Response(
            200,
            json={
                "success": True,
                "message": "Import completed. 1 items imported successfully, 1 failed.",
                "data": {
                    "success": 1,
                    "failed": 1,
                    "errors": ["Row 2: Serial number SN-2 already exists"],
                },
            },
        )
    )
    with make_client(api) as client:
        result = submit_valid([_outcome(1), _outcome(2)], client)
    assert result.succeeded == 1
    assert result.failed == 1
    assert result.partial
    assert result.errors == ("Row 2: Serial number SN-2 already exists",)
    assert result.message.startswith("Import completed.")


def test_collaborator_failure_message_is_surfaced(make_client, api_factory):
    api = api_factory(
        bulk_response=httpx.Response(
            400, json={"success": False, "message": "Maximum 1000 items can be imported at once"}
        )
    )
    with make_client(api) as client, pytest.raises(ImportSubmissionError) as e:
        submit_valid([_outcome(1)], client)
    assert str(e.value) == "Maximum 1000 items can be imported at once"
    assert e.value.status_code == 400


def test_non_json_server_error_gets_generic_message(make_client, api_factory):
    api = api_factory(bulk_response=httpx.Response(500, text="<html>boom</html>"))
    with make_client(api) as client, pytest.raises(ImportSubmissionError) as e:
        submit_valid([_outcome(1)], client)
    assert str(e.value) == GENERIC_IMPORT_FAILURE
    assert e.value.status_code == 500


def test_success_false_with_200_is_a_failure(make_client, api_factory):
    api = api_factory(bulk_response=httpx.Response(200, json={"success": False}))
    with make_client(api) as client, pytest.raises(ImportSubmissionError) as e:
        submit_valid([_outcome(1)], client)
    assert str(e.value) == GENERIC_IMPORT_FAILURE


def test_transport_error_gets_generic_message(api_config):
    from equipment_import.services.importer import ImportClient

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with ImportClient(api_config, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ImportSubmissionError) as e:
            submit_valid([_outcome(1)], client)
    assert str(e.value) == GENERIC_IMPORT_FAILURE
    assert e.value.status_code is None


def test_fetch_labs(make_client, fake_api):
    fake_api.labs_payload = [{"id": 3, "name": "CAD Lab"}, {"id": "5", "name": "Bio"}, {"name": "no id"}]
    with make_client() as client:
        found = client.fetch_labs()
    assert [lab.id for lab in found] == [3, 5]
    assert found[0].name == "CAD Lab"
    request = fake_api.requests[0]
    assert request.url.path == "/api/labs"
    assert request.url.params["limit"] == "1000"


def test_fetch_labs_http_error(make_client, fake_api):
    fake_api.labs_response = httpx.Response(401, json={"message": "unauthorized"})
    with make_client() as client, pytest.raises(ImportSubmissionError):
        client.fetch_labs()


def test_build_payload_applies_defaults_and_coerces():
    candidate = EquipmentCandidate(
        name="  Compound Microscope ",
        serial_number=None,
        category="microscope",
        lab_id="5",
        purchase_price=Decimal("31999"),
        current_value=Decimal("25599.20"),
        stock_register_page=12,
        extra={"magnification": "40x-1000x"},
    )
    payload = build_payload(candidate, 7, [Lab(id=3)])
    assert payload["name"] == "Compound Microscope"
    assert payload["serial_number"] == "AUTO-7"
    assert payload["status"] == "available"
    assert payload["condition_status"] == "good"
    assert payload["lab_id"] == 5
    assert payload["purchase_price"] == 31999
    assert isinstance(payload["purchase_price"], int)
    assert payload["current_value"] == pytest.approx(25599.2)
    assert payload["stock_register_page"] == "12"
    assert payload["magnification"] == "40x-1000x"
    assert payload["model"] is None
    json.dumps(payload)


def test_build_payload_lab_fallbacks():
    candidate = EquipmentCandidate(name="x", serial_number="s", category="computer")
    assert build_payload(candidate, 1, [Lab(id=3), Lab(id=5)])["lab_id"] == 3
    config = ImportConfig(defaults=DefaultsConfig(fallback_lab_id=9))
    assert build_payload(candidate, 1, [], config)["lab_id"] == 9
    assert build_payload(candidate, 1, [])["lab_id"] == 1


@pytest.mark.parametrize("lab_id, expected", [("7", 7), (7.0, 7), ("  5 ", 5)])
def test_build_payload_keeps_supplied_lab_id(lab_id, expected):
    candidate = EquipmentCandidate(name="x", serial_number="s", category="computer", lab_id=lab_id)
    assert build_payload(candidate, 1, [Lab(id=3)])["lab_id"] == expected


@pytest.mark.parametrize("lab_id", ["abc", 0, "7.9"])
def test_build_payload_rejects_malformed_lab_id(lab_id):
    candidate = EquipmentCandidate(name="x", serial_number="s", category="computer", lab_id=lab_id)
    with pytest.raises(ValueError, match="invalid lab_id"):
        build_payload(candidate, 4, [], ImportConfig(defaults=DefaultsConfig(fallback_lab_id=1)))


def test_malformed_lab_id_row_is_never_submitted(make_client, fake_api):
    candidates = [
        EquipmentCandidate(name="Bench", serial_number="B-1", category="lab_equipment", lab_id="abc"),
        EquipmentCandidate(name="Scope", serial_number="S-1", category="microscope", lab_id=4),
    ]
    outcomes = validate_candidates(candidates, [])
    assert not outcomes[0].is_valid
    with make_client() as client:
        result = submit_valid(outcomes, client)
    assert result.succeeded == 1
    assert [i["lab_id"] for i in fake_api.submitted_items()] == [4]


def test_build_payload_non_numeric_price_becomes_null():
    candidate = EquipmentCandidate(name="x", serial_number="s", category="computer", purchase_price="n/a")
    assert build_payload(candidate, 1)["purchase_price"] is None
