from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import ApiConfig, DefaultsConfig, ImportConfig, LimitsConfig

"""Config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate against the bundled JSON schema (import_schema.json)
- Apply defaults for omitted sections / keys
- Apply EQUIPMENT_API_URL / EQUIPMENT_API_TOKEN environment overrides
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "load_config",
    "config_from_dict",
]

SCHEMA_PATH = Path(__file__).parent / "import_schema.json"

ENV_API_URL = "EQUIPMENT_API_URL"
ENV_API_TOKEN = "EQUIPMENT_API_TOKEN"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the config data
            violates the schema (missing keys, wrong types, extra keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Build ImportConfig from already validated data, then apply env overrides."""
    api_raw = data.get("api") or {}
    limits_raw = data.get("limits") or {}
    defaults_raw = data.get("defaults") or {}

    api_defaults = ApiConfig()
    # 環境変数 (.env 読み込み済み) を最優先
    api = ApiConfig(
        base_url=os.getenv(ENV_API_URL) or api_raw.get("base_url", api_defaults.base_url),
        bulk_import_path=api_raw.get("bulk_import_path", api_defaults.bulk_import_path),
        labs_path=api_raw.get("labs_path", api_defaults.labs_path),
        timeout=float(api_raw.get("timeout", api_defaults.timeout)),
        token=os.getenv(ENV_API_TOKEN) or api_raw.get("token"),
    )
    limit_defaults = LimitsConfig()
    limits = LimitsConfig(
        max_file_bytes=limits_raw.get("max_file_bytes", limit_defaults.max_file_bytes),
        max_rows=limits_raw.get("max_rows", limit_defaults.max_rows),
    )
    default_values = DefaultsConfig()
    defaults = DefaultsConfig(
        fallback_lab_id=defaults_raw.get("fallback_lab_id", default_values.fallback_lab_id),
        depreciation_rate=float(
            defaults_raw.get("depreciation_rate", default_values.depreciation_rate)
        ),
    )
    return ImportConfig(api=api, limits=limits, defaults=defaults)


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return config_from_dict(data)
