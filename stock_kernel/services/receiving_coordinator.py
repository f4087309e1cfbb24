"""
ReceivingCoordinator -- posts goods received against a purchase order.

Responsibility:
    Turns one receiving operation (a PO and a list of lines) into a Receipt,
    its ReceiptItems, one ``receipt`` StockMovement per line, the matching
    increments of ``po_items.quantity_received`` and a status recompute.

Architecture position:
    Kernel > Services.  Orchestrates StockLedger and
    PurchaseOrderStatusResolver.  Flushes only; the caller commits.

Invariants enforced:
    - PO_SERIALIZATION: the first statement locks the purchase order row.
    - ATOMIC_RECEIVING: every line is validated before the first write; any
      later failure propagates and the caller's rollback discards the
      receipt, its items, the movements, the stock updates and the
      increments together.
    - MONOTONIC_RECEIVING: increments are positive column arithmetic.

Failure modes:
    - MissingFieldError, InvalidQuantityError, ValidationError: bad input.
    - PurchaseOrderNotFoundError, PurchaseOrderItemNotFoundError,
      ProductNotFoundError, ReceiptLineMismatchError: bad references.
    - PurchaseOrderCancelledError: PO is cancelled.
    - OverReceiptError: reject policy and a PO item would be over-received.

Audit relevance:
    Each ReceiptItem stores the id of the movement it produced; movements
    carry ``reference_type="po_receipt"`` and the receipt id.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import ReceiptCondition, ReceiptLine, ReceiveResult
from stock_kernel.domain.identity import IdGenerator, UUID4Generator
from stock_kernel.domain.movement import MovementType, signed_delta
from stock_kernel.domain.po_status import POStatus
from stock_kernel.domain.policy import LedgerPolicy, OverReceiptPolicy
from stock_kernel.exceptions import (
    InvalidQuantityError,
    MissingFieldError,
    OverReceiptError,
    ProductNotFoundError,
    PurchaseOrderCancelledError,
    PurchaseOrderItemNotFoundError,
    ReceiptLineMismatchError,
    ValidationError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.product import Product
from stock_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stock_kernel.models.receipt import Receipt, ReceiptItem
from stock_kernel.services.base import BaseService
from stock_kernel.services.locking import lock_purchase_order
from stock_kernel.services.po_status_resolver import PurchaseOrderStatusResolver
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.receiving_coordinator")

RECEIPT_REFERENCE_TYPE = "po_receipt"


@dataclass(frozen=True)
class _ValidatedLine:
    line: ReceiptLine
    item: PurchaseOrderItem
    unit_cost: Decimal
    condition: ReceiptCondition
    over_receipt: bool


class ReceivingCoordinator(BaseService[Receipt]):
    """
    Receives goods against a purchase order in one atomic unit.

    Contract:
        ``receive`` returns a ReceiveResult after flushing every row of the
        receipt, or raises before (validation) or during (database) the
        writes.  The caller must roll back on any exception.
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        ledger: StockLedger | None = None,
        resolver: PurchaseOrderStatusResolver | None = None,
        sequence_service: SequenceService | None = None,
    ):
        super().__init__(session)
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()
        self._ids = id_generator or UUID4Generator()
        self._sequences = sequence_service or SequenceService(session)
        self._ledger = ledger or StockLedger(
            session,
            policy=self._policy,
            clock=self._clock,
            id_generator=self._ids,
            sequence_service=self._sequences,
        )
        self._resolver = resolver or PurchaseOrderStatusResolver(session)

    def receive(
        self,
        po_id: UUID,
        received_date: date,
        received_by: str,
        lines: Sequence[ReceiptLine],
        notes: str | None = None,
        idempotency_key: str | None = None,
    ) -> ReceiveResult:
        """
        Receive ``lines`` against purchase order ``po_id``.

        Args:
            po_id: Purchase order being received.
            received_date: Business date of the delivery.
            received_by: Opaque id of the receiving user.
            lines: One or more receipt lines; the same PO item may appear
                more than once.
            notes: Free text stored on the receipt.
            idempotency_key: When given, a second call with the same key for
                the same PO returns the first result and writes nothing.

        Returns:
            ReceiveResult with the receipt identity, recomputed status and
            totals.
        """
        self._check_request(received_date, received_by, lines)

        with LogContext.bind(po_id=po_id, actor_id=received_by):
            po = lock_purchase_order(self.session, po_id)

            if idempotency_key is not None:
                existing = self.session.execute(
                    select(Receipt).where(
                        Receipt.po_id == po_id,
                        Receipt.idempotency_key == idempotency_key,
                    )
                ).scalar_one_or_none()
                if existing is not None:
                    return self._replay(po, existing)

            if po.status == POStatus.CANCELLED.value:
                raise PurchaseOrderCancelledError(str(po_id))

            validated = self._validate_lines(po, lines)
            return self._post(po, received_date, received_by, validated, notes, idempotency_key)

    # ------------------------------------------------------------------
    # Validation (no writes)
    # ------------------------------------------------------------------

    def _check_request(self, received_date, received_by, lines) -> None:
        if received_date is None:
            raise MissingFieldError("received_date")
        if received_by is None or not str(received_by).strip():
            raise MissingFieldError("received_by")
        if not lines:
            raise MissingFieldError("lines")
        for line in lines:
            qty = line.quantity_received
            if isinstance(qty, bool) or not isinstance(qty, int):
                raise InvalidQuantityError(qty, "quantity_received must be an integer")
            if qty <= 0:
                raise InvalidQuantityError(qty, "quantity_received must be positive")

    def _validate_lines(
        self, po: PurchaseOrder, lines: Sequence[ReceiptLine]
    ) -> list[_ValidatedLine]:
        items = {
            item.id: item
            for item in self.session.execute(
                select(PurchaseOrderItem)
                .where(PurchaseOrderItem.po_id == po.id)
                .execution_options(populate_existing=True)
            ).scalars()
        }

        pending: dict[UUID, int] = defaultdict(int)
        validated: list[_ValidatedLine] = []

        for line in lines:
            item = items.get(line.po_item_id)
            if item is None:
                raise PurchaseOrderItemNotFoundError(str(line.po_item_id), str(po.id))
            if line.product_id != item.product_id:
                raise ReceiptLineMismatchError(
                    str(item.id), str(item.product_id), str(line.product_id)
                )
            product = self.session.execute(
                select(Product.id).where(Product.id == item.product_id)
            ).scalar_one_or_none()
            if product is None:
                raise ProductNotFoundError(str(item.product_id))

            # Same cap a direct receipt movement would face.
            signed_delta(
                MovementType.RECEIPT,
                line.quantity_received,
                self._policy.max_movement_magnitude,
            )
            unit_cost = self._parse_unit_cost(line.unit_cost)
            try:
                condition = ReceiptCondition(line.condition)
            except ValueError:
                raise ValidationError(
                    f"Invalid receipt condition: {line.condition!r}"
                ) from None

            pending[item.id] += line.quantity_received
            would_be = item.quantity_received + pending[item.id]
            over = would_be > item.quantity_ordered
            if over:
                if self._policy.over_receipt is OverReceiptPolicy.REJECT:
                    raise OverReceiptError(str(item.id), item.quantity_ordered, would_be)
                logger.warning(
                    "over_receipt_flagged",
                    extra={
                        "po_item_id": str(item.id),
                        "quantity_ordered": item.quantity_ordered,
                        "quantity_received": would_be,
                    },
                )

            validated.append(
                _ValidatedLine(
                    line=line,
                    item=item,
                    unit_cost=unit_cost,
                    condition=condition,
                    over_receipt=over,
                )
            )

        return validated

    @staticmethod
    def _parse_unit_cost(raw) -> Decimal:
        try:
            unit_cost = raw if isinstance(raw, Decimal) else Decimal(str(raw))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid unit_cost: {raw!r}") from None
        if not unit_cost.is_finite() or unit_cost < 0:
            raise ValidationError(f"unit_cost must be a non-negative number: {raw!r}")
        return unit_cost

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _post(
        self,
        po: PurchaseOrder,
        received_date: date,
        received_by: str,
        validated: list[_ValidatedLine],
        notes: str | None,
        idempotency_key: str | None,
    ) -> ReceiveResult:
        seq = self._sequences.next_value(SequenceService.PO_RECEIPT)
        receipt = Receipt(
            id=self._ids.next_id(),
            po_id=po.id,
            receipt_number=f"{self._policy.receipt_number_prefix}-{seq:08d}",
            received_date=received_date,
            received_by=received_by,
            notes=notes,
            idempotency_key=idempotency_key,
            created_at=self._clock.now(),
        )
        self.session.add(receipt)
        self.session.flush()

        movement_ids: list[UUID] = []
        over_item_ids: list[UUID] = []

        with LogContext.bind(receipt_id=receipt.id):
            for line_number, v in enumerate(validated, start=1):
                qty = v.line.quantity_received
                movement_id = self._ledger.append(
                    product_id=v.item.product_id,
                    variant_id=v.item.variant_id,
                    movement_type=MovementType.RECEIPT.value,
                    quantity=qty,
                    reference_type=RECEIPT_REFERENCE_TYPE,
                    reference_id=str(receipt.id),
                    reason=f"Received on {po.po_number} ({receipt.receipt_number})",
                    actor_id=received_by,
                )
                movement_ids.append(movement_id)

                self.session.add(
                    ReceiptItem(
                        id=self._ids.next_id(),
                        receipt_id=receipt.id,
                        line_number=line_number,
                        po_item_id=v.item.id,
                        product_id=v.item.product_id,
                        variant_id=v.item.variant_id,
                        quantity_received=qty,
                        unit_cost=v.unit_cost,
                        total_cost=v.unit_cost * qty,
                        condition=v.condition.value,
                        over_receipt=v.over_receipt,
                        notes=v.line.notes,
                        movement_id=movement_id,
                    )
                )

                # INVARIANT: MONOTONIC_RECEIVING -- positive column arithmetic.
                self.session.execute(
                    update(PurchaseOrderItem)
                    .where(PurchaseOrderItem.id == v.item.id)
                    .values(quantity_received=PurchaseOrderItem.quantity_received + qty)
                    .execution_options(synchronize_session=False)
                )
                if v.over_receipt and v.item.id not in over_item_ids:
                    over_item_ids.append(v.item.id)

            self.session.flush()
            for v in validated:
                self.session.expire(v.item, ["quantity_received"])

            status = self._resolver.reconcile(po.id, received_date=received_date)
            ordered, received, _ = self._resolver.totals(po.id)

            logger.info(
                "po_receipt_completed",
                extra={
                    "receipt_number": receipt.receipt_number,
                    "line_count": len(validated),
                    "po_status": status.value,
                    "total_ordered": ordered,
                    "total_received": received,
                    "over_received_item_ids": [str(i) for i in over_item_ids],
                },
            )

        return ReceiveResult(
            receipt_id=receipt.id,
            receipt_number=receipt.receipt_number,
            po_status=status,
            total_ordered=ordered,
            total_received=received,
            movement_ids=tuple(movement_ids),
            over_received_item_ids=tuple(over_item_ids),
        )

    def _replay(self, po: PurchaseOrder, receipt: Receipt) -> ReceiveResult:
        items = self.session.execute(
            select(ReceiptItem)
            .where(ReceiptItem.receipt_id == receipt.id)
            .order_by(ReceiptItem.line_number)
        ).scalars().all()
        over_item_ids: list[UUID] = []
        for item in items:
            if item.over_receipt and item.po_item_id not in over_item_ids:
                over_item_ids.append(item.po_item_id)
        ordered, received, _ = self._resolver.totals(po.id)

        logger.info(
            "po_receipt_replayed",
            extra={
                "receipt_id": str(receipt.id),
                "receipt_number": receipt.receipt_number,
                "idempotency_key": receipt.idempotency_key,
            },
        )
        return ReceiveResult(
            receipt_id=receipt.id,
            receipt_number=receipt.receipt_number,
            po_status=POStatus(po.status),
            total_ordered=ordered,
            total_received=received,
            movement_ids=tuple(item.movement_id for item in items),
            over_received_item_ids=tuple(over_item_ids),
            replayed=True,
        )
