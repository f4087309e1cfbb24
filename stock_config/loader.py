"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a
``StockConfigurationSet``.  Runtime callers go through
``stock_config.get_active_config()`` rather than calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys, missing required keys or invalid values -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import StockConfigurationSet

_KNOWN_KEYS = frozenset(f.name for f in fields(StockConfigurationSet)) - {"checksum"}
_INT_KEYS = ("version", "max_movement_magnitude", "default_min_stock_level")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_config(data: dict[str, Any]) -> StockConfigurationSet:
    """
    Build a StockConfigurationSet from a parsed YAML mapping.

    The checksum is computed over the raw mapping, so it identifies the
    file content rather than the defaults filled in afterwards.
    """
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
    for required in ("config_id", "version"):
        if required not in data:
            raise ValueError(f"Missing required configuration key: {required}")

    values = dict(data)
    for key in _INT_KEYS:
        if key in values:
            value = values[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{key} must be an integer, got {value!r}")
    if "sqlite_busy_timeout_seconds" in values:
        values["sqlite_busy_timeout_seconds"] = float(values["sqlite_busy_timeout_seconds"])
    values["config_id"] = str(values["config_id"])

    return StockConfigurationSet(**values, checksum=compute_checksum(data))


def load_config_file(path: Path) -> StockConfigurationSet:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization.  Deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
