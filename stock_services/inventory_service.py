"""
stock_services.inventory_service -- public stock ledger and receiving operations.

Responsibility:
    The operations external callers use: record a stock movement, receive
    goods against a purchase order, change a purchase order's
    administrative status, query stock.  Wires the kernel services together
    with one policy, one clock and one id generator, and owns the
    transaction boundary of every call.

Architecture position:
    Services -- transaction ownership over the kernel.  Kernel services only
    flush; this class commits on success and rolls back on any failure.

Invariants enforced:
    - ATOMIC_RECEIVING / ATOMIC_PROJECTION: each public write is exactly one
      database transaction.
    - No retries: lock contention, deadlocks, serialization failures and
      busy databases surface as ``ConcurrencyConflictError``
      (``retryable=True``) after rollback.  Every other error propagates
      unchanged after rollback.

Usage::

    config = get_active_config()
    service = InventoryService.from_config(session, config)
    movement_id = service.record_movement(product_id, None, "sale", 3)
    result = service.receive_purchase_order_items(
        po_id, date(2024, 3, 1), "user-7",
        [ReceiptLine(po_item_id=item_id, product_id=product_id,
                     quantity_received=5, unit_cost=Decimal("2.50"))],
    )
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import MISSING, fields
from datetime import date
from decimal import Decimal
from typing import Any, Iterator, Mapping, Sequence
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from stock_config.bridges import build_ledger_policy
from stock_config.schema import StockConfigurationSet
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    LowStockRow,
    MovementRecord,
    PurchaseOrderLineInput,
    PurchaseOrderView,
    ReceiptLine,
    ReceiptView,
    ReceiveResult,
    StatusChange,
)
from stock_kernel.domain.identity import IdGenerator, UUID4Generator
from stock_kernel.domain.policy import LedgerPolicy
from stock_kernel.exceptions import (
    ConcurrencyConflictError,
    MissingFieldError,
    ValidationError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from stock_kernel.selectors.stock_selector import DEFAULT_HISTORY_LIMIT, StockSelector
from stock_kernel.services.purchase_order_service import PurchaseOrderService
from stock_kernel.services.receiving_coordinator import ReceivingCoordinator
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.inventory")

# PostgreSQL SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
_CONCURRENCY_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
_CONCURRENCY_MARKERS = (
    "deadlock",
    "lock timeout",
    "lock_timeout",
    "database is locked",
    "database table is locked",
    "could not serialize",
    "serialization failure",
    "could not obtain lock",
)


def is_concurrency_error(exc: DBAPIError) -> bool:
    """True when a driver error means lock contention rather than bad data."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _CONCURRENCY_SQLSTATES:
        return True
    message = str(orig if orig is not None else exc).lower()
    return any(marker in message for marker in _CONCURRENCY_MARKERS)


def _from_mapping(dto_cls, data: Mapping[str, Any], id_fields: tuple[str, ...]):
    """
    Build an input DTO from a JSON-shaped mapping.

    Unknown keys, absent or null required keys and malformed ids raise
    ValidationError subclasses; id strings become UUIDs.
    """
    dto_fields = fields(dto_cls)
    unknown = sorted(set(data) - {f.name for f in dto_fields})
    if unknown:
        raise ValidationError(f"Unknown {dto_cls.__name__} fields: {unknown}")
    for f in dto_fields:
        required = f.default is MISSING and f.default_factory is MISSING
        if required and data.get(f.name) is None:
            raise MissingFieldError(f.name)

    values = dict(data)
    for name in id_fields:
        raw = values.get(name)
        if raw is None or isinstance(raw, UUID):
            continue
        try:
            values[name] = UUID(str(raw))
        except ValueError:
            raise ValidationError(f"{name} is not a valid id: {raw!r}") from None
    return dto_cls(**values)


def _as_receipt_line(line: ReceiptLine | Mapping[str, Any]) -> ReceiptLine:
    if isinstance(line, ReceiptLine):
        return line
    return _from_mapping(ReceiptLine, line, ("po_item_id", "product_id"))


def _as_po_line(line: PurchaseOrderLineInput | Mapping[str, Any]) -> PurchaseOrderLineInput:
    if isinstance(line, PurchaseOrderLineInput):
        return line
    return _from_mapping(PurchaseOrderLineInput, line, ("product_id", "variant_id"))


class InventoryService:
    """
    Stock ledger and PO receiving operations with transaction ownership.

    Contract
    --------
    Every public method runs in its own transaction on ``session``: commit
    on success, rollback on any exception before re-raising.  The policy is
    fixed for the lifetime of the instance.
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        self._session = session
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()
        self._ids = id_generator or UUID4Generator()

        sequences = SequenceService(session)
        self._ledger = StockLedger(
            session,
            policy=self._policy,
            clock=self._clock,
            id_generator=self._ids,
            sequence_service=sequences,
        )
        self._coordinator = ReceivingCoordinator(
            session,
            policy=self._policy,
            clock=self._clock,
            id_generator=self._ids,
            ledger=self._ledger,
            sequence_service=sequences,
        )
        self._purchase_orders = PurchaseOrderService(
            session,
            policy=self._policy,
            clock=self._clock,
            id_generator=self._ids,
            sequence_service=sequences,
        )
        self._stock = StockSelector(session)
        self._po_reader = PurchaseOrderSelector(session)

    @classmethod
    def from_config(
        cls,
        session: Session,
        config: StockConfigurationSet,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ) -> InventoryService:
        return cls(session, build_ledger_policy(config), clock, id_generator)

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except DBAPIError as exc:
            self._session.rollback()
            if is_concurrency_error(exc):
                logger.warning(
                    "concurrency_conflict",
                    extra={"operation": operation, "detail": str(exc.orig)},
                )
                raise ConcurrencyConflictError(operation, str(exc.orig)) from exc
            logger.error(
                "transaction_rolled_back",
                extra={"operation": operation},
                exc_info=True,
            )
            raise
        except Exception:
            self._session.rollback()
            logger.info(
                "transaction_rolled_back",
                extra={"operation": operation},
                exc_info=True,
            )
            raise

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_movement(
        self,
        product_id: UUID,
        variant_id: UUID | None,
        movement_type: str,
        magnitude: int,
        reference_type: str | None = None,
        reference_id: str | None = None,
        reason: str | None = None,
        actor_id: str | None = None,
    ) -> UUID:
        """Record a standalone stock event (sale, adjustment, return, ...)."""
        with LogContext.bind(product_id=product_id, actor_id=actor_id):
            with self._transaction("record_movement"):
                return self._ledger.append(
                    product_id=product_id,
                    variant_id=variant_id,
                    movement_type=movement_type,
                    quantity=magnitude,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    reason=reason,
                    actor_id=actor_id,
                )

    def receive_purchase_order_items(
        self,
        po_id: UUID,
        received_date: date,
        received_by: str,
        lines: Sequence[ReceiptLine | Mapping[str, Any]],
        notes: str | None = None,
        idempotency_key: str | None = None,
    ) -> ReceiveResult:
        """Receive goods against a purchase order.  All lines or none."""
        with self._transaction("receive_purchase_order_items"):
            return self._coordinator.receive(
                po_id=po_id,
                received_date=received_date,
                received_by=received_by,
                lines=[_as_receipt_line(line) for line in lines],
                notes=notes,
                idempotency_key=idempotency_key,
            )

    def set_purchase_order_status(
        self,
        po_id: UUID,
        status: str,
        user_id: str,
        options: Mapping[str, Any] | None = None,
    ) -> StatusChange:
        """
        Administrative status override (send/approve, cancel).

        ``options={"approve": True}`` stamps the approver when sending.
        partial and received cannot be set here.
        """
        approve = bool((options or {}).get("approve", False))
        with self._transaction("set_purchase_order_status"):
            return self._purchase_orders.set_status(po_id, status, user_id, approve=approve)

    def create_purchase_order(
        self,
        supplier_id: str,
        order_date: date,
        items: Sequence[PurchaseOrderLineInput | Mapping[str, Any]],
        created_by: str,
        expected_date: date | None = None,
        freight_cost: Decimal = Decimal("0"),
        duty_cost: Decimal = Decimal("0"),
        other_costs: Decimal = Decimal("0"),
        notes: str | None = None,
        po_number: str | None = None,
    ) -> UUID:
        with self._transaction("create_purchase_order"):
            return self._purchase_orders.create_purchase_order(
                supplier_id=supplier_id,
                order_date=order_date,
                items=[_as_po_line(item) for item in items],
                created_by=created_by,
                expected_date=expected_date,
                freight_cost=freight_cost,
                duty_cost=duty_cost,
                other_costs=other_costs,
                notes=notes,
                po_number=po_number,
            )

    # ------------------------------------------------------------------
    # Reads (each closes its transaction so no lock outlives the call)
    # ------------------------------------------------------------------

    def get_current_stock(self, product_id: UUID, variant_id: UUID | None = None) -> int:
        with self._transaction("get_current_stock"):
            return self._stock.current_stock(product_id, variant_id)

    def get_stock_movements(
        self,
        product_id: UUID,
        variant_id: UUID | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[MovementRecord]:
        with self._transaction("get_stock_movements"):
            return self._stock.movement_history(product_id, variant_id, limit)

    def get_low_stock_products(self) -> list[LowStockRow]:
        with self._transaction("get_low_stock_products"):
            return self._stock.low_stock(self._policy.default_min_stock_level)

    def get_purchase_order(self, po_id: UUID) -> PurchaseOrderView:
        with self._transaction("get_purchase_order"):
            return self._po_reader.get(po_id)

    def get_receipts(self, po_id: UUID) -> list[ReceiptView]:
        with self._transaction("get_receipts"):
            return self._po_reader.receipts(po_id)
