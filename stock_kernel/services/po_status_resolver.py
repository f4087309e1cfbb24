"""
PurchaseOrderStatusResolver -- derives PO status from item totals.

Responsibility:
    Computes draft/sent/partial/received from the persisted
    ``quantity_ordered`` and ``quantity_received`` of all the PO's items and
    writes the result back.  Never trusts a caller-supplied status.

Architecture position:
    Kernel > Services.  Invoked by ReceivingCoordinator once per receipt,
    after all item increments; usable on its own for recomputation.

Invariants enforced:
    - DERIVED_PO_STATUS: status is a pure function of item totals
      (``stock_kernel.domain.po_status.resolve_status``).
    - Recomputation is idempotent.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.po_status import POStatus, resolve_status
from stock_kernel.exceptions import PurchaseOrderNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stock_kernel.services.base import BaseService

logger = get_logger("services.po_status_resolver")


class PurchaseOrderStatusResolver(BaseService[PurchaseOrder]):

    def __init__(self, session: Session):
        super().__init__(session)

    def totals(self, po_id: UUID) -> tuple[int, int, int]:
        """Return (total_ordered, total_received, item_count) from the database."""
        row = self.session.execute(
            select(
                func.coalesce(func.sum(PurchaseOrderItem.quantity_ordered), 0),
                func.coalesce(func.sum(PurchaseOrderItem.quantity_received), 0),
                func.count(PurchaseOrderItem.id),
            ).where(PurchaseOrderItem.po_id == po_id)
        ).one()
        return int(row[0]), int(row[1]), int(row[2])

    def resolve(self, po_id: UUID) -> POStatus:
        """Compute the status the PO should have.  Read-only."""
        current = self.session.execute(
            select(PurchaseOrder.status).where(PurchaseOrder.id == po_id)
        ).scalar_one_or_none()
        if current is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        ordered, received, count = self.totals(po_id)
        return resolve_status(POStatus(current), ordered, received, count)

    def reconcile(self, po_id: UUID, received_date: date | None = None) -> POStatus:
        """
        Resolve and persist the PO's status.

        Args:
            po_id: Purchase order to recompute.
            received_date: Date of the receipt that triggered this; stored as
                the PO's latest received date when given.
        """
        po = self.session.get(PurchaseOrder, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))

        previous = POStatus(po.status)
        ordered, received, count = self.totals(po_id)
        status = resolve_status(previous, ordered, received, count)

        if status is not previous:
            po.status = status.value
        if received_date is not None:
            po.received_date = received_date
        self.session.flush()

        logger.info(
            "po_status_resolved",
            extra={
                "po_id": str(po_id),
                "previous_status": previous.value,
                "status": status.value,
                "total_ordered": ordered,
                "total_received": received,
            },
        )
        return status
