"""
Configuration schema (``stock_config.schema``).

The frozen dataclass a YAML configuration set is parsed into.  One
``StockConfigurationSet`` describes one deployment: which negative-stock and
over-receipt policies it runs, the movement magnitude cap, document number
prefixes and where its database lives.
"""

from __future__ import annotations

from dataclasses import dataclass

NEGATIVE_STOCK_POLICIES = ("strict", "clamp")
OVER_RECEIPT_POLICIES = ("reject", "flag")


@dataclass(frozen=True)
class StockConfigurationSet:
    config_id: str
    version: int
    negative_stock_policy: str = "strict"
    over_receipt_policy: str = "flag"
    max_movement_magnitude: int = 9999
    receipt_number_prefix: str = "RCP"
    po_number_prefix: str = "PO"
    default_min_stock_level: int = 5
    database_url: str = "sqlite:///stock_ledger.db"
    sqlite_busy_timeout_seconds: float = 30.0
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id is required")
        if self.negative_stock_policy not in NEGATIVE_STOCK_POLICIES:
            raise ValueError(
                f"negative_stock_policy must be one of {NEGATIVE_STOCK_POLICIES}, "
                f"got {self.negative_stock_policy!r}"
            )
        if self.over_receipt_policy not in OVER_RECEIPT_POLICIES:
            raise ValueError(
                f"over_receipt_policy must be one of {OVER_RECEIPT_POLICIES}, "
                f"got {self.over_receipt_policy!r}"
            )
        if self.max_movement_magnitude <= 0:
            raise ValueError("max_movement_magnitude must be positive")
        if self.default_min_stock_level < 0:
            raise ValueError("default_min_stock_level must be non-negative")
        if self.sqlite_busy_timeout_seconds <= 0:
            raise ValueError("sqlite_busy_timeout_seconds must be positive")
