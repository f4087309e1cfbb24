"""Pure domain layer: movement types, status rules, policy, clock, ids, DTOs."""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    LowStockRow,
    MovementRecord,
    PurchaseOrderItemView,
    PurchaseOrderLineInput,
    PurchaseOrderView,
    ReceiptCondition,
    ReceiptItemView,
    ReceiptLine,
    ReceiptView,
    ReceiveResult,
    StatusChange,
)
from stock_kernel.domain.identity import IdGenerator, SequentialIdGenerator, UUID4Generator
from stock_kernel.domain.movement import MovementType, parse_movement_type, signed_delta
from stock_kernel.domain.po_status import POStatus, check_admin_transition, resolve_status
from stock_kernel.domain.policy import LedgerPolicy, NegativeStockPolicy, OverReceiptPolicy

__all__ = [
    "Clock",
    "DeterministicClock",
    "IdGenerator",
    "LedgerPolicy",
    "LowStockRow",
    "MovementRecord",
    "MovementType",
    "NegativeStockPolicy",
    "OverReceiptPolicy",
    "POStatus",
    "PurchaseOrderItemView",
    "PurchaseOrderLineInput",
    "PurchaseOrderView",
    "ReceiptCondition",
    "ReceiptItemView",
    "ReceiptLine",
    "ReceiptView",
    "ReceiveResult",
    "SequentialIdGenerator",
    "StatusChange",
    "SystemClock",
    "UUID4Generator",
    "check_admin_transition",
    "parse_movement_type",
    "resolve_status",
    "signed_delta",
]
