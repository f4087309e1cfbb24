"""
PurchaseOrderService -- purchase-order creation and administrative status changes.

Responsibility:
    Creates purchase orders with their items and totals, and applies the
    administrative status transitions (send/approve, cancel).  The
    receiving-derived statuses (partial, received) are refused here; they
    belong to PurchaseOrderStatusResolver.

Architecture position:
    Kernel > Services.  Flushes only; the caller commits.

Invariants enforced:
    - DERIVED_PO_STATUS: ``set_status`` raises ResolverOwnedStatusError for
      partial/received.
    - PO_SERIALIZATION: ``set_status`` locks the purchase order row, so it
      cannot interleave with a receipt on the same PO.
    - cancelled is terminal.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import PurchaseOrderLineInput, StatusChange
from stock_kernel.domain.identity import IdGenerator, UUID4Generator
from stock_kernel.domain.po_status import POStatus, check_admin_transition
from stock_kernel.domain.policy import LedgerPolicy
from stock_kernel.exceptions import (
    InvalidQuantityError,
    InvalidStatusTransitionError,
    MissingFieldError,
    ProductNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.product import Product, ProductVariant
from stock_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stock_kernel.services.base import BaseService
from stock_kernel.services.locking import lock_purchase_order
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.purchase_order")


def _money(value, field_name: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field_name} is not a number: {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field_name} must be a non-negative amount: {value!r}")
    return amount


class PurchaseOrderService(BaseService[PurchaseOrder]):

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        sequence_service: SequenceService | None = None,
    ):
        super().__init__(session)
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()
        self._ids = id_generator or UUID4Generator()
        self._sequences = sequence_service or SequenceService(session)

    def create_purchase_order(
        self,
        supplier_id: str,
        order_date: date,
        items: Sequence[PurchaseOrderLineInput],
        created_by: str,
        expected_date: date | None = None,
        freight_cost: Decimal = Decimal("0"),
        duty_cost: Decimal = Decimal("0"),
        other_costs: Decimal = Decimal("0"),
        notes: str | None = None,
        po_number: str | None = None,
    ) -> UUID:
        """
        Create a draft purchase order.

        ``subtotal`` is the sum of item quantity x unit cost; ``total_cost``
        adds freight, duty and other costs.  ``po_number`` defaults to the
        next ``PO-########`` from the purchase_order sequence.
        """
        if not supplier_id:
            raise MissingFieldError("supplier_id")
        if not created_by:
            raise MissingFieldError("created_by")
        if order_date is None:
            raise MissingFieldError("order_date")
        if not items:
            raise MissingFieldError("items")

        freight = _money(freight_cost, "freight_cost")
        duty = _money(duty_cost, "duty_cost")
        other = _money(other_costs, "other_costs")

        line_costs: list[tuple[PurchaseOrderLineInput, Decimal, Decimal]] = []
        for item in items:
            qty = item.quantity_ordered
            if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                raise InvalidQuantityError(qty, "quantity_ordered must be a positive integer")
            unit_cost = _money(item.unit_cost, "unit_cost")
            self._check_product(item.product_id, item.variant_id)
            line_costs.append((item, unit_cost, unit_cost * qty))

        subtotal = sum((total for _, _, total in line_costs), Decimal("0"))

        if po_number is None:
            seq = self._sequences.next_value(SequenceService.PURCHASE_ORDER)
            po_number = f"{self._policy.po_number_prefix}-{seq:08d}"

        po = PurchaseOrder(
            id=self._ids.next_id(),
            po_number=po_number,
            supplier_id=supplier_id,
            status=POStatus.DRAFT.value,
            order_date=order_date,
            expected_date=expected_date,
            subtotal=subtotal,
            freight_cost=freight,
            duty_cost=duty,
            other_costs=other,
            total_cost=subtotal + freight + duty + other,
            notes=notes,
            created_by=created_by,
        )
        self.session.add(po)
        self.session.flush()

        for line_number, (item, unit_cost, total) in enumerate(line_costs, start=1):
            self.session.add(
                PurchaseOrderItem(
                    id=self._ids.next_id(),
                    po_id=po.id,
                    line_number=line_number,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    quantity_ordered=item.quantity_ordered,
                    quantity_received=0,
                    quantity_invoiced=0,
                    unit_cost=unit_cost,
                    total_cost=total,
                    description=item.description,
                )
            )
        self.session.flush()
        self.session.expire(po, ["items"])

        logger.info(
            "purchase_order_created",
            extra={
                "po_id": str(po.id),
                "po_number": po_number,
                "supplier_id": supplier_id,
                "item_count": len(line_costs),
                "total_cost": po.total_cost,
            },
        )
        return po.id

    def set_status(
        self,
        po_id: UUID,
        status: "POStatus | str",
        user_id: str,
        approve: bool = False,
    ) -> StatusChange:
        """
        Administrative status change.

        Allowed: draft -> sent, draft/sent/partial -> cancelled, and any
        same-status no-op.  ``approve=True`` on a move to sent stamps the
        approver; cancelling stamps the canceller.
        """
        if not user_id:
            raise MissingFieldError("user_id")

        with LogContext.bind(po_id=po_id, actor_id=user_id):
            po = lock_purchase_order(self.session, po_id)
            current = POStatus(po.status)
            try:
                target = POStatus(status)
            except ValueError:
                raise InvalidStatusTransitionError(
                    str(po_id), current.value, str(status)
                ) from None

            changed = check_admin_transition(str(po_id), current, target)
            if not changed:
                return StatusChange(po_id=po.id, status=current, changed=False)

            now = self._clock.now()
            po.status = target.value
            if target is POStatus.SENT and approve:
                po.approved_by = user_id
                po.approved_at = now
            elif target is POStatus.CANCELLED:
                po.cancelled_by = user_id
                po.cancelled_at = now
            self.session.flush()

            logger.info(
                "po_status_changed",
                extra={
                    "from_status": current.value,
                    "to_status": target.value,
                    "approved": bool(approve and target is POStatus.SENT),
                },
            )
            return StatusChange(po_id=po.id, status=target, changed=True)

    def _check_product(self, product_id: UUID, variant_id: UUID | None) -> None:
        exists = self.session.execute(
            select(Product.id).where(Product.id == product_id)
        ).scalar_one_or_none()
        if exists is None:
            raise ProductNotFoundError(str(product_id))
        if variant_id is not None:
            owner = self.session.execute(
                select(ProductVariant.product_id).where(ProductVariant.id == variant_id)
            ).scalar_one_or_none()
            if owner != product_id:
                raise VariantNotFoundError(str(variant_id), str(product_id))
