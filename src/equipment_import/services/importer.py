from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import httpx

from ..errors import ImportSubmissionError, NoValidRowsError
from ..models.config_models import ApiConfig, ImportConfig
from ..models.defaults import DefaultContext, apply_defaults
from ..models.equipment import EquipmentCandidate, Lab, is_blank, to_decimal, to_lab_id
from ..models.import_result import ImportBatchResult
from ..models.validation import ValidationOutcome

"""Bulk-import submission.

The valid subset of a validated batch is sent in ONE request to the
lab-management API bulk-import endpoint. No retries; the timeout is the
configured transport timeout. The collaborator result is surfaced verbatim:
rows it rejects (duplicate serial number, unknown lab, ...) are reported in
ImportBatchResult, not raised.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "GENERIC_IMPORT_FAILURE",
    "NO_VALID_ROWS_MESSAGE",
    "ImportClient",
    "build_payload",
    "submit_valid",
]

GENERIC_IMPORT_FAILURE = "Import failed. Please try again."
NO_VALID_ROWS_MESSAGE = "No valid rows to import. Please fix the errors and try again."

_TEXT_FIELDS = (
    "name",
    "description",
    "serial_number",
    "model",
    "manufacturer",
    "category",
    "location_details",
    "status",
    "condition_status",
    "stock_register_page",
)


class ImportClient:
    """Thin httpx wrapper around the lab-management API.

    The bearer token is supplied by the caller; its lifecycle is not managed here.
    """

    def __init__(
        self,
        api: ApiConfig,
        *,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api = api
        self.token = token if token is not None else api.token
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._client = httpx.Client(
            base_url=api.base_url.rstrip("/"),
            headers=headers,
            timeout=api.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ImportClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def bulk_import(self, items: Sequence[dict[str, Any]]) -> ImportBatchResult:
        """POST the batch and return the collaborator's per-row counts.

        Raises:
            ImportSubmissionError: transport failure, non-2xx status or
                ``success: false``; carries the collaborator message when present
        """
        try:
            response = self._client.post(self.api.bulk_import_path, json={"equipmentData": list(items)})
        except httpx.HTTPError as e:
            logger.debug("bulk import transport error: %s", e)
            raise ImportSubmissionError(GENERIC_IMPORT_FAILURE) from e

        body = _json_body(response)
        if response.is_success and body.get("success"):
            return ImportBatchResult.from_response(body)
        message = body.get("message") or GENERIC_IMPORT_FAILURE
        raise ImportSubmissionError(str(message), status_code=response.status_code)

    def fetch_labs(self) -> list[Lab]:
        """GET the labs listing (``data.labs[*]``) for use as the reference list."""
        try:
            response = self._client.get(self.api.labs_path, params={"limit": 1000})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImportSubmissionError(f"failed to fetch labs: {e}") from e
        body = _json_body(response)
        data = body.get("data") or {}
        raw_labs = data.get("labs") if isinstance(data, dict) else data
        return [Lab.from_api(item) for item in raw_labs or [] if isinstance(item, dict) and "id" in item]


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _json_number(value: Decimal | None) -> int | float | None:
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def build_payload(
    candidate: EquipmentCandidate,
    row_number: int,
    labs: Sequence[Lab] = (),
    config: ImportConfig | None = None,
) -> dict[str, Any]:
    """Wire form of one candidate.

    Field defaults come from the central table (lab_id falls back to the first
    known lab, else the configured fallback). A supplied lab_id is coerced to
    int, never replaced; the price fields become decimal numbers and extra
    columns ride along unchanged.

    Raises:
        ValueError: lab_id is not a positive whole number
    """
    config = config or ImportConfig()
    ctx = DefaultContext(
        row_index=row_number, labs=labs, fallback_lab_id=config.defaults.fallback_lab_id
    )
    values = apply_defaults(candidate.as_dict(), ctx)
    for key in _TEXT_FIELDS:
        value = values.get(key)
        if is_blank(value):
            values[key] = None
        elif not isinstance(value, str):
            values[key] = str(value)
        else:
            values[key] = value.strip()
    lab_id = to_lab_id(values["lab_id"])
    if lab_id is None:
        raise ValueError(f"row {row_number}: invalid lab_id {values['lab_id']!r}")
    values["lab_id"] = lab_id
    values["purchase_price"] = _json_number(to_decimal(values.get("purchase_price")))
    values["current_value"] = _json_number(to_decimal(values.get("current_value")))
    return values


def submit_valid(
    outcomes: Sequence[ValidationOutcome],
    client: ImportClient,
    labs: Sequence[Lab] = (),
    config: ImportConfig | None = None,
) -> ImportBatchResult:
    """Submit every valid row in one bulk-import request.

    Raises:
        NoValidRowsError: no outcome is valid (no request is made)
        ImportSubmissionError: propagated from the client
    """
    valid = [o for o in outcomes if o.is_valid]
    if not valid:
        raise NoValidRowsError(NO_VALID_ROWS_MESSAGE)
    payload = [build_payload(o.candidate, o.row_number, labs, config) for o in valid]
    logger.info("submitting %d of %d rows to bulk import", len(payload), len(outcomes))
    result = client.bulk_import(payload)
    logger.info("bulk import result success=%d failed=%d", result.succeeded, result.failed)
    return result
