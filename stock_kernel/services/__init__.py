"""Kernel write services.  All flush within the caller's transaction."""

from stock_kernel.services.po_status_resolver import PurchaseOrderStatusResolver
from stock_kernel.services.purchase_order_service import PurchaseOrderService
from stock_kernel.services.receiving_coordinator import ReceivingCoordinator
from stock_kernel.services.sequence_service import SequenceCounter, SequenceService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.stock_projector import StockProjector

__all__ = [
    "PurchaseOrderService",
    "PurchaseOrderStatusResolver",
    "ReceivingCoordinator",
    "SequenceCounter",
    "SequenceService",
    "StockLedger",
    "StockProjector",
]
