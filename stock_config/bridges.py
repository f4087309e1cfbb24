"""
Config -> Kernel Bridges.

Converts a StockConfigurationSet into the kernel's own policy value.  Lives
in stock_config (the producer) because the kernel must never import
stock_config.

Usage:
    config = get_active_config()
    policy = build_ledger_policy(config)
"""

from __future__ import annotations

from stock_config.schema import StockConfigurationSet
from stock_kernel.domain.policy import (
    LedgerPolicy,
    NegativeStockPolicy,
    OverReceiptPolicy,
)


def build_ledger_policy(config: StockConfigurationSet) -> LedgerPolicy:
    return LedgerPolicy(
        negative_stock=NegativeStockPolicy(config.negative_stock_policy),
        over_receipt=OverReceiptPolicy(config.over_receipt_policy),
        max_movement_magnitude=config.max_movement_magnitude,
        receipt_number_prefix=config.receipt_number_prefix,
        po_number_prefix=config.po_number_prefix,
        default_min_stock_level=config.default_min_stock_level,
    )
