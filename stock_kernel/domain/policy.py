"""
Deployment policy for the ledger and receiving services.

LedgerPolicy is a frozen value built once per deployment (by
``stock_config.bridges.build_ledger_policy``) and handed to service
constructors.  Services never switch policy per call.
"""

from dataclasses import dataclass
from enum import Enum


class NegativeStockPolicy(str, Enum):
    STRICT = "strict"
    """Reject any movement that would take on-hand stock below zero."""

    CLAMP = "clamp"
    """Floor on-hand stock at zero; the ledger keeps the true delta."""


class OverReceiptPolicy(str, Enum):
    REJECT = "reject"
    """Fail the whole receipt when a PO item would be over-received."""

    FLAG = "flag"
    """Accept the receipt, mark the line and report the PO item."""


@dataclass(frozen=True)
class LedgerPolicy:
    negative_stock: NegativeStockPolicy = NegativeStockPolicy.STRICT
    over_receipt: OverReceiptPolicy = OverReceiptPolicy.FLAG
    max_movement_magnitude: int = 9999
    receipt_number_prefix: str = "RCP"
    po_number_prefix: str = "PO"
    default_min_stock_level: int = 5

    def __post_init__(self) -> None:
        if self.max_movement_magnitude <= 0:
            raise ValueError("max_movement_magnitude must be positive")
        if self.default_min_stock_level < 0:
            raise ValueError("default_min_stock_level must be non-negative")
        if not self.receipt_number_prefix or not self.po_number_prefix:
            raise ValueError("document number prefixes must be non-empty")
