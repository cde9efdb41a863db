from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the equipment import tool.

These are the typed form of config/import.yml after schema validation and
environment overrides (see equipment_import.config.loader).
"""

__all__ = [
    "ApiConfig",
    "LimitsConfig",
    "DefaultsConfig",
    "ImportConfig",
]


@dataclass(frozen=True)
class ApiConfig:
    """Lab-management API connection settings.

    EQUIPMENT_API_URL / EQUIPMENT_API_TOKEN environment variables take
    precedence over the file values.
    """
    base_url: str = "http://localhost:5000"
    bulk_import_path: str = "/api/equipment/bulk-import"
    labs_path: str = "/api/labs"
    timeout: float = 30.0
    token: str | None = None


@dataclass(frozen=True)
class LimitsConfig:
    """Upload guards shown to users as "max 10MB / 1000 rows"."""
    max_file_bytes: int = 10 * 1024 * 1024
    max_rows: int = 1000


@dataclass(frozen=True)
class DefaultsConfig:
    fallback_lab_id: int = 1  # labs 参照リストが空のときの lab_id
    depreciation_rate: float = 0.8  # current_value = purchase_price * rate


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import run."""
    api: ApiConfig = field(default_factory=ApiConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
