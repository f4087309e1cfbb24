"""
Kernel Invariants Contract.

These invariants are structural law.  No deployment configuration (negative
stock policy, over-receipt policy, magnitude cap) may switch them off; the
configuration only chooses *how* a rule reacts, never *whether* it applies.

This module exists solely to declare these invariants explicitly.  The
enforcement is distributed across StockLedger, StockProjector,
ReceivingCoordinator, PurchaseOrderStatusResolver and db/immutability.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the stock kernel."""

    APPEND_ONLY_LEDGER = "append_only_ledger"
    """Stock movements, receipts and receipt items are never updated or
    deleted.  Corrections are new offsetting movements.  Enforced by ORM
    listeners (stock_kernel.db.immutability)."""

    SIGN_POLICY = "sign_policy"
    """The signed delta of a movement is derived from its type by a fixed
    table; only adjustments carry a caller-supplied sign.  Enforced by
    stock_kernel.domain.movement.signed_delta."""

    ATOMIC_PROJECTION = "atomic_projection"
    """Stock is changed by a single column-arithmetic UPDATE in the same
    transaction as the movement row.  Enforced by StockProjector."""

    MONOTONIC_RECEIVING = "monotonic_receiving"
    """PurchaseOrderItem.quantity_received never decreases.  Enforced by
    ReceivingCoordinator (positive increments only) and an ORM listener."""

    ATOMIC_RECEIVING = "atomic_receiving"
    """A receipt, its items, PO-item increments, movements, stock updates and
    the status recompute commit together or not at all."""

    PO_SERIALIZATION = "po_serialization"
    """Receiving and administrative status changes hold a row lock on the
    purchase order for the whole transaction."""

    DERIVED_PO_STATUS = "derived_po_status"
    """partial/received are computed from item totals by the resolver and
    can never be set by an administrative call."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "stock_services",
    "stock_config",
)
