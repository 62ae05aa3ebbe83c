from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import AppConfig, DatabaseConfig, ReconciliationConfig

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/reconcile.yml``)
- Validate against the bundled JSON schema (unknown keys rejected)
- Apply defaults (uploaded_by, header_row, first-column key)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/reconcile.yml")
SCHEMA_PATH = Path(__file__).with_name("reconcile_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or if
            the config data fails schema validation.
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


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    recon_raw = data.get("reconciliation") or {}
    recon = ReconciliationConfig(
        key_column=recon_raw.get("key_column"),
        key_column_overrides=dict(recon_raw.get("key_column_overrides") or {}),
    )
    return AppConfig(
        archive_directory=data["archive_directory"],
        uploaded_by=data.get("uploaded_by", "operator"),
        header_row=data.get("header_row", 1),
        sheet_name=data.get("sheet_name"),
        reconciliation=recon,
        database=db,
    )
