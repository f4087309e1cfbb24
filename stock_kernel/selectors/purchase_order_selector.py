"""
PurchaseOrderSelector -- read side of purchase orders and receipts.
"""

from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.domain.dtos import (
    PurchaseOrderItemView,
    PurchaseOrderView,
    ReceiptCondition,
    ReceiptItemView,
    ReceiptView,
)
from stock_kernel.domain.po_status import POStatus
from stock_kernel.exceptions import PurchaseOrderNotFoundError
from stock_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stock_kernel.models.receipt import Receipt, ReceiptItem
from stock_kernel.selectors.base import BaseSelector


class PurchaseOrderSelector(BaseSelector[PurchaseOrder]):

    def get(self, po_id: UUID) -> PurchaseOrderView:
        po = self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))

        items = self.session.execute(
            select(PurchaseOrderItem)
            .where(PurchaseOrderItem.po_id == po_id)
            .order_by(PurchaseOrderItem.line_number)
            .execution_options(populate_existing=True)
        ).scalars()

        return PurchaseOrderView(
            id=po.id,
            po_number=po.po_number,
            supplier_id=po.supplier_id,
            status=POStatus(po.status),
            order_date=po.order_date,
            expected_date=po.expected_date,
            received_date=po.received_date,
            subtotal=po.subtotal,
            total_cost=po.total_cost,
            created_by=po.created_by,
            approved_by=po.approved_by,
            approved_at=po.approved_at,
            cancelled_by=po.cancelled_by,
            cancelled_at=po.cancelled_at,
            notes=po.notes,
            items=tuple(
                PurchaseOrderItemView(
                    id=item.id,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    quantity_ordered=item.quantity_ordered,
                    quantity_received=item.quantity_received,
                    unit_cost=item.unit_cost,
                    total_cost=item.total_cost,
                    description=item.description,
                )
                for item in items
            ),
        )

    def receipts(self, po_id: UUID) -> list[ReceiptView]:
        """All receipts of a PO, oldest first, with their items."""
        receipts = self.session.execute(
            select(Receipt)
            .where(Receipt.po_id == po_id)
            .order_by(Receipt.created_at, Receipt.receipt_number)
        ).scalars().all()

        views = []
        for receipt in receipts:
            items = self.session.execute(
                select(ReceiptItem)
                .where(ReceiptItem.receipt_id == receipt.id)
                .order_by(ReceiptItem.line_number)
            ).scalars()
            views.append(
                ReceiptView(
                    id=receipt.id,
                    po_id=receipt.po_id,
                    receipt_number=receipt.receipt_number,
                    received_date=receipt.received_date,
                    received_by=receipt.received_by,
                    created_at=receipt.created_at,
                    idempotency_key=receipt.idempotency_key,
                    notes=receipt.notes,
                    items=tuple(
                        ReceiptItemView(
                            id=item.id,
                            po_item_id=item.po_item_id,
                            product_id=item.product_id,
                            variant_id=item.variant_id,
                            quantity_received=item.quantity_received,
                            unit_cost=item.unit_cost,
                            total_cost=item.total_cost,
                            condition=ReceiptCondition(item.condition),
                            over_receipt=item.over_receipt,
                            movement_id=item.movement_id,
                            notes=item.notes,
                        )
                        for item in items
                    ),
                )
            )
        return views

    def totals(self, po_id: UUID) -> tuple[int, int]:
        """(total_ordered, total_received) across all items of the PO."""
        ordered, received = self.session.execute(
            select(
                func.coalesce(func.sum(PurchaseOrderItem.quantity_ordered), 0),
                func.coalesce(func.sum(PurchaseOrderItem.quantity_received), 0),
            ).where(PurchaseOrderItem.po_id == po_id)
        ).one()
        return int(ordered), int(received)

    def received_by_item(self, po_id: UUID) -> dict[UUID, int]:
        """Sum of receipt-item quantities per PO item, from the receipts themselves."""
        rows = self.session.execute(
            select(ReceiptItem.po_item_id, func.sum(ReceiptItem.quantity_received))
            .join(Receipt, Receipt.id == ReceiptItem.receipt_id)
            .where(Receipt.po_id == po_id)
            .group_by(ReceiptItem.po_item_id)
        ).all()
        return {po_item_id: int(total) for po_item_id, total in rows}

    def all_ids(self) -> list[UUID]:
        return list(
            self.session.execute(
                select(PurchaseOrder.id).order_by(PurchaseOrder.po_number)
            ).scalars()
        )
