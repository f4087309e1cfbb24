"""Row locks shared by the purchase-order write paths."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.exceptions import PurchaseOrderNotFoundError
from stock_kernel.models.purchase_order import PurchaseOrder


def lock_purchase_order(session: Session, po_id: UUID) -> PurchaseOrder:
    """
    ``SELECT ... FOR UPDATE`` the purchase order and return a fresh instance.

    Held until the caller's transaction ends, so receiving and
    administrative status changes on one PO are serialized.  On SQLite the
    clause is not rendered; BEGIN IMMEDIATE already serializes writers.
    """
    po = session.execute(
        select(PurchaseOrder)
        .where(PurchaseOrder.id == po_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if po is None:
        raise PurchaseOrderNotFoundError(str(po_id))
    return po
