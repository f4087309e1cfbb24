"""
stock_config -- single public entrypoint for deployment configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration.  Sits above ``stock_kernel`` and below
    ``stock_services``.  The kernel MUST NEVER import from
    ``stock_config``; ``bridges.build_ledger_policy`` translates the
    configuration into the kernel's LedgerPolicy.

Failure modes:
    - ``FileNotFoundError`` -- the selected configuration file is missing.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STOCK_CONFIG_TRACE`` log entry with the config_id, version, checksum
    and policies in force.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from stock_config.bridges import build_ledger_policy
from stock_config.loader import load_config_file
from stock_config.schema import StockConfigurationSet

_logger = logging.getLogger("stock_kernel.config")

CONFIG_PATH_ENV = "STOCK_LEDGER_CONFIG"
DATABASE_URL_ENV = "STOCK_LEDGER_DATABASE_URL"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> StockConfigurationSet:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``path`` argument, then the
    ``STOCK_LEDGER_CONFIG`` environment variable, then the packaged
    ``defaults.yaml``.  ``STOCK_LEDGER_DATABASE_URL`` overrides
    ``database_url`` from whichever file was used.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        path = Path(env_path) if env_path else _DEFAULT_CONFIG_FILE
    config = load_config_file(Path(path))

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = dataclasses.replace(config, database_url=database_url)

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "negative_stock_policy": config.negative_stock_policy,
            "over_receipt_policy": config.over_receipt_policy,
            "max_movement_magnitude": config.max_movement_magnitude,
        },
    )
    return config


__all__ = [
    "StockConfigurationSet",
    "build_ledger_policy",
    "get_active_config",
]
