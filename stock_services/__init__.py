"""
stock_services -- public operations over the stock kernel.

Responsibility:
    Transaction-owning entry points: ``InventoryService`` for movements,
    receiving, PO administration and queries; ``StockReconciliationService``
    for the read-only consistency check.

Architecture position:
    Services.  Dependency direction (enforced by
    tests/architecture/test_kernel_boundary.py):
        stock_services/ -> stock_kernel/, stock_config/  (allowed)
        stock_kernel/   -> stock_services/               (FORBIDDEN)
"""

from stock_services.inventory_service import InventoryService, is_concurrency_error
from stock_services.reconciliation_service import (
    ConsistencyReport,
    ReceivingDiscrepancy,
    StatusDiscrepancy,
    StockDiscrepancy,
    StockReconciliationService,
)

__all__ = [
    "ConsistencyReport",
    "InventoryService",
    "ReceivingDiscrepancy",
    "StatusDiscrepancy",
    "StockDiscrepancy",
    "StockReconciliationService",
    "is_concurrency_error",
]
