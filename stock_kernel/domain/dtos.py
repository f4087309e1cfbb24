"""
Value objects crossing the kernel boundary.

Inputs to the write services (receipt lines, PO lines) and the results and
read-side views they return.  All frozen; none of them are ORM instances.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.domain.movement import MovementType
from stock_kernel.domain.po_status import POStatus


class ReceiptCondition(str, Enum):
    """Physical condition of goods on a receipt line."""

    GOOD = "good"
    DAMAGED = "damaged"
    PARTIAL = "partial"


# -- inputs ------------------------------------------------------------------


@dataclass(frozen=True)
class ReceiptLine:
    """One line of a receiving operation."""

    po_item_id: UUID
    product_id: UUID
    quantity_received: int
    unit_cost: Decimal
    condition: ReceiptCondition = ReceiptCondition.GOOD
    notes: str | None = None


@dataclass(frozen=True)
class PurchaseOrderLineInput:
    """One line of a new purchase order."""

    product_id: UUID
    quantity_ordered: int
    unit_cost: Decimal
    variant_id: UUID | None = None
    description: str | None = None


# -- results -----------------------------------------------------------------


@dataclass(frozen=True)
class ReceiveResult:
    """
    Outcome of a receiving operation.

    ``replayed`` is True when an idempotency key matched an earlier receipt
    and nothing was written; in that case ``movement_ids`` are the ones the
    original receipt produced.
    """

    receipt_id: UUID
    receipt_number: str
    po_status: POStatus
    total_ordered: int
    total_received: int
    movement_ids: tuple[UUID, ...] = ()
    over_received_item_ids: tuple[UUID, ...] = ()
    replayed: bool = False


@dataclass(frozen=True)
class StatusChange:
    po_id: UUID
    status: POStatus
    changed: bool = True


# -- read-side views ---------------------------------------------------------


@dataclass(frozen=True)
class MovementRecord:
    id: UUID
    seq: int
    product_id: UUID
    variant_id: UUID | None
    movement_type: MovementType
    quantity: int
    stock_after: int
    reference_type: str | None
    reference_id: str | None
    reason: str | None
    created_by: str | None
    created_at: datetime


@dataclass(frozen=True)
class LowStockRow:
    product_id: UUID
    variant_id: UUID | None
    sku: str
    name: str
    current_stock: int
    min_stock_level: int
    status: str  # "out_of_stock" | "low_stock"


@dataclass(frozen=True)
class PurchaseOrderItemView:
    id: UUID
    product_id: UUID
    variant_id: UUID | None
    quantity_ordered: int
    quantity_received: int
    unit_cost: Decimal
    total_cost: Decimal
    description: str | None = None

    @property
    def quantity_outstanding(self) -> int:
        return max(self.quantity_ordered - self.quantity_received, 0)


@dataclass(frozen=True)
class PurchaseOrderView:
    id: UUID
    po_number: str
    supplier_id: str
    status: POStatus
    order_date: date
    expected_date: date | None
    received_date: date | None
    subtotal: Decimal
    total_cost: Decimal
    created_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    notes: str | None = None
    items: tuple[PurchaseOrderItemView, ...] = field(default_factory=tuple)

    @property
    def total_ordered(self) -> int:
        return sum(item.quantity_ordered for item in self.items)

    @property
    def total_received(self) -> int:
        return sum(item.quantity_received for item in self.items)


@dataclass(frozen=True)
class ReceiptItemView:
    id: UUID
    po_item_id: UUID
    product_id: UUID
    variant_id: UUID | None
    quantity_received: int
    unit_cost: Decimal
    total_cost: Decimal
    condition: ReceiptCondition
    over_receipt: bool
    movement_id: UUID
    notes: str | None = None


@dataclass(frozen=True)
class ReceiptView:
    id: UUID
    po_id: UUID
    receipt_number: str
    received_date: date
    received_by: str
    created_at: datetime
    idempotency_key: str | None = None
    notes: str | None = None
    items: tuple[ReceiptItemView, ...] = field(default_factory=tuple)
