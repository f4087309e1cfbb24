"""
StockProjector -- applies a signed delta to a stock holder's on-hand quantity.

Responsibility:
    Maintains ``current_stock`` on products and variants as the running
    projection of the ledger.  Every change is a single column-arithmetic
    UPDATE so two concurrent movements on the same holder can never lose an
    update.

Architecture position:
    Kernel > Services.  Called only by StockLedger, inside the ledger's
    transaction, before the movement row is written.

Invariants enforced:
    - ATOMIC_PROJECTION: ``current_stock = current_stock + :delta`` in one
      statement; never read-modify-write.
    - Strict policy: the UPDATE is guarded by ``current_stock + :delta >= 0``.
      Zero affected rows means the holder is missing or stock is short.
    - Clamp policy: ``CASE WHEN current_stock + :delta < 0 THEN 0 ...``.  The
      ledger still records the true delta; the divergence is logged.

Failure modes:
    - ProductNotFoundError / VariantNotFoundError: holder row missing.
    - InsufficientStockError: strict policy and stock would go negative.
"""

from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from stock_kernel.domain.policy import NegativeStockPolicy
from stock_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    VariantNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.product import Product, ProductVariant
from stock_kernel.services.base import BaseService

logger = get_logger("services.stock_projector")


class StockProjector(BaseService[Product]):
    """
    Applies signed deltas to on-hand stock under a fixed negative-stock policy.

    The policy is chosen once at construction; there is no per-call override.
    """

    def __init__(
        self,
        session: Session,
        negative_stock_policy: NegativeStockPolicy = NegativeStockPolicy.STRICT,
    ):
        super().__init__(session)
        self._policy = NegativeStockPolicy(negative_stock_policy)

    @property
    def policy(self) -> NegativeStockPolicy:
        return self._policy

    def apply(self, product_id: UUID, variant_id: UUID | None, signed_delta: int) -> int:
        """
        Add ``signed_delta`` to the holder's stock.

        Returns:
            The holder's on-hand quantity after the update.
        """
        model = ProductVariant if variant_id is not None else Product
        holder_id = variant_id if variant_id is not None else product_id
        column = model.current_stock
        projected = column + signed_delta

        if self._policy is NegativeStockPolicy.STRICT:
            previous = None
            stmt = (
                update(model)
                .where(model.id == holder_id, projected >= 0)
                .values(current_stock=projected)
            )
        else:
            # Row lock (no-op on SQLite, where BEGIN IMMEDIATE already holds
            # the write lock) so the pre-image is exact for clamp reporting.
            previous = self.session.execute(
                select(column).where(model.id == holder_id).with_for_update()
            ).scalar_one_or_none()
            if previous is None:
                self._raise_not_found(product_id, variant_id)
            stmt = (
                update(model)
                .where(model.id == holder_id)
                .values(current_stock=case((projected < 0, 0), else_=projected))
            )

        result = self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            available = self.session.execute(
                select(column).where(model.id == holder_id)
            ).scalar_one_or_none()
            if available is None:
                self._raise_not_found(product_id, variant_id)
            logger.info(
                "stock_movement_rejected_insufficient",
                extra={
                    "product_id": str(product_id),
                    "variant_id": str(variant_id) if variant_id else None,
                    "available": available,
                    "requested": -signed_delta,
                },
            )
            raise InsufficientStockError(
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                available=available,
                requested=-signed_delta,
            )

        new_stock = self.session.execute(
            select(column).where(model.id == holder_id)
        ).scalar_one()
        self._expire_cached(model, holder_id)

        if previous is not None and previous + signed_delta < 0:
            logger.warning(
                "stock_clamped_at_zero",
                extra={
                    "product_id": str(product_id),
                    "variant_id": str(variant_id) if variant_id else None,
                    "previous_stock": previous,
                    "delta": signed_delta,
                    "unapplied": -(previous + signed_delta),
                },
            )

        return new_stock

    def _expire_cached(self, model, holder_id: UUID) -> None:
        """Drop the stale ``current_stock`` of an already-loaded holder."""
        key = self.session.identity_key(model, holder_id)
        instance = self.session.identity_map.get(key)
        if instance is not None:
            self.session.expire(instance, ["current_stock"])

    def _raise_not_found(self, product_id: UUID, variant_id: UUID | None):
        if variant_id is not None:
            raise VariantNotFoundError(str(variant_id), str(product_id))
        raise ProductNotFoundError(str(product_id))
