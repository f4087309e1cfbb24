"""
Purchase-order status rules.

Responsibility:
    The pure status derivation rule used by PurchaseOrderStatusResolver and
    the administrative transition table used by PurchaseOrderService.

Architecture position:
    Kernel > Domain -- pure, no I/O.

Invariants enforced:
    - DERIVED_PO_STATUS: partial and received are only ever produced by
      ``resolve_status``.  ``check_admin_transition`` refuses them.
    - cancelled is terminal for both receiving and administration.

State machine::

    draft --> sent --> partial --> received
      |        |          |
      +--------+----------+--> cancelled   (administrative only)
"""

from enum import Enum

from stock_kernel.exceptions import (
    InvalidStatusTransitionError,
    ResolverOwnedStatusError,
)


class POStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"


RESOLVER_OWNED_STATUSES: frozenset[POStatus] = frozenset(
    {POStatus.PARTIAL, POStatus.RECEIVED}
)

ADMIN_TRANSITIONS: dict[POStatus, frozenset[POStatus]] = {
    POStatus.DRAFT: frozenset({POStatus.SENT, POStatus.CANCELLED}),
    POStatus.SENT: frozenset({POStatus.CANCELLED}),
    POStatus.PARTIAL: frozenset({POStatus.CANCELLED}),
    POStatus.RECEIVED: frozenset(),
    POStatus.CANCELLED: frozenset(),
}


def resolve_status(
    current: POStatus,
    total_ordered: int,
    total_received: int,
    item_count: int,
) -> POStatus:
    """
    Derive a PO's status from its item totals.

    A PO with no items, or with nothing received yet, keeps its current
    status (draft or sent).  A cancelled PO stays cancelled.
    """
    if current is POStatus.CANCELLED:
        return POStatus.CANCELLED
    if item_count == 0 or total_received == 0:
        return current
    if total_received >= total_ordered:
        return POStatus.RECEIVED
    return POStatus.PARTIAL


def check_admin_transition(po_id: str, current: POStatus, target: POStatus) -> bool:
    """
    Validate an administrative status change.

    Returns:
        True if the status actually changes, False for a same-status no-op.

    Raises:
        ResolverOwnedStatusError: target is partial or received.
        InvalidStatusTransitionError: transition not in ADMIN_TRANSITIONS.
    """
    if target in RESOLVER_OWNED_STATUSES:
        raise ResolverOwnedStatusError(po_id, target.value)
    if target is current:
        return False
    if target not in ADMIN_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(po_id, current.value, target.value)
    return True
