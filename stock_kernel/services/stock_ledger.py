"""
StockLedger -- the append-only movement store and the single write path for stock.

Responsibility:
    Validates a stock event, applies the sign policy, drives the projector
    and writes exactly one immutable StockMovement row.  Sale, adjustment,
    return and loss flows call it directly; receiving calls it once per
    receipt line.

Architecture position:
    Kernel > Services.  Flushes only; the caller owns the transaction.

Invariants enforced:
    - SIGN_POLICY (via ``stock_kernel.domain.movement.signed_delta``).
    - ATOMIC_PROJECTION: projector update and movement insert share the
      caller's transaction; a rollback undoes both.
    - APPEND_ONLY_LEDGER: rows are inserted, never updated.

Failure modes:
    - InvalidMovementTypeError, InvalidQuantityError,
      MovementMagnitudeExceededError: raised before any write.
    - ProductNotFoundError, VariantNotFoundError: raised before any write.
    - InsufficientStockError: strict policy; nothing was written.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.identity import IdGenerator, UUID4Generator
from stock_kernel.domain.movement import parse_movement_type, signed_delta
from stock_kernel.domain.policy import LedgerPolicy
from stock_kernel.exceptions import ProductNotFoundError, VariantNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.product import Product, ProductVariant
from stock_kernel.models.stock_movement import StockMovement
from stock_kernel.services.base import BaseService
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.services.stock_projector import StockProjector

logger = get_logger("services.stock_ledger")


class StockLedger(BaseService[StockMovement]):
    """
    Append-only ledger of stock movements.

    Contract:
        ``append`` either records one movement and updates the holder's
        stock, or raises and leaves both untouched.
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        projector: StockProjector | None = None,
        sequence_service: SequenceService | None = None,
    ):
        super().__init__(session)
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()
        self._ids = id_generator or UUID4Generator()
        self._projector = projector or StockProjector(session, self._policy.negative_stock)
        self._sequences = sequence_service or SequenceService(session)

    def append(
        self,
        product_id: UUID,
        variant_id: UUID | None,
        movement_type: str,
        quantity: int,
        reference_type: str | None = None,
        reference_id: str | None = None,
        reason: str | None = None,
        actor_id: str | None = None,
    ) -> UUID:
        """
        Record one stock movement.

        Args:
            product_id: Product the movement is for.
            variant_id: Variant carrying the stock, or None for the product.
            movement_type: receipt, adjustment, sale, return, transfer, loss
                or found.
            quantity: Magnitude (signed only for adjustments).
            reference_type: Kind of originating document, e.g. "po_receipt".
            reference_id: Id of the originating document.
            reason: Free text for audit.
            actor_id: Opaque user id.

        Returns:
            Id of the new StockMovement.
        """
        mtype = parse_movement_type(movement_type)
        delta = signed_delta(mtype, quantity, self._policy.max_movement_magnitude)
        self._check_holder(product_id, variant_id)

        # Counter lock before holder lock: every writer takes them in this order.
        seq = self._sequences.next_value(SequenceService.STOCK_MOVEMENT)
        stock_after = self._projector.apply(product_id, variant_id, delta)

        movement = StockMovement(
            id=self._ids.next_id(),
            seq=seq,
            product_id=product_id,
            variant_id=variant_id,
            movement_type=mtype.value,
            quantity=delta,
            stock_after=stock_after,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            created_by=actor_id,
            created_at=self._clock.now(),
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "stock_movement_recorded",
            extra={
                "movement_id": str(movement.id),
                "seq": movement.seq,
                "product_id": str(product_id),
                "variant_id": str(variant_id) if variant_id else None,
                "movement_type": mtype.value,
                "quantity": delta,
                "stock_after": stock_after,
                "reference_type": reference_type,
                "reference_id": reference_id,
            },
        )
        return movement.id

    def _check_holder(self, product_id: UUID, variant_id: UUID | None) -> None:
        exists = self.session.execute(
            select(Product.id).where(Product.id == product_id)
        ).scalar_one_or_none()
        if exists is None:
            raise ProductNotFoundError(str(product_id))
        if variant_id is None:
            return
        owner = self.session.execute(
            select(ProductVariant.product_id).where(ProductVariant.id == variant_id)
        ).scalar_one_or_none()
        if owner is None or owner != product_id:
            raise VariantNotFoundError(str(variant_id), str(product_id))
