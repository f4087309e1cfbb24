"""
StockMovement -- the append-only ledger row.

Every change to on-hand stock has exactly one StockMovement recorded in the
same transaction.  ``quantity`` is the signed delta after the sign policy;
``seq`` is allocated from the ``stock_movement`` sequence and gives a total
order that survives equal ``created_at`` timestamps.

Invariants enforced:
    - APPEND_ONLY_LEDGER: UPDATE and DELETE are blocked by ORM listeners
      (stock_kernel.db.immutability).
    - ``quantity <> 0`` and ``movement_type`` in the closed set (CHECK).

``stock_after`` is the holder's on-hand quantity right after this movement
was applied.  Under the clamp policy it can differ from the running ledger
sum; the reconciliation report relies on that.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base
from stock_kernel.domain.movement import MovementType

_TYPE_LIST = ", ".join(f"'{t.value}'" for t in MovementType)


class StockMovement(Base):
    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity <> 0", name="ck_stock_movements_nonzero"),
        CheckConstraint(
            f"movement_type IN ({_TYPE_LIST})",
            name="ck_stock_movements_type",
        ),
        Index("idx_stock_movements_product", "product_id", "created_at"),
        Index("idx_stock_movements_variant", "variant_id"),
        Index("idx_stock_movements_reference", "reference_type", "reference_id"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("product_variants.id"), nullable=True
    )
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stock_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<StockMovement #{self.seq} {self.movement_type} {self.quantity:+d}>"
