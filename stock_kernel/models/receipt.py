"""
Receipts -- immutable records of goods arriving against a purchase order.

A Receipt groups the ReceiptItems of one receiving operation.  Each
ReceiptItem points at the StockMovement it produced, so every unit received
is traceable from PO line to ledger row.

Invariants enforced:
    - APPEND_ONLY_LEDGER: both tables are insert-only (ORM listeners).
    - ``receipt_number`` is unique; ``idempotency_key`` is unique per PO
      (NULL keys never collide).
    - ``quantity_received > 0`` on every item.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base


class Receipt(Base):
    __tablename__ = "po_receipts"

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_po_receipts_number"),
        UniqueConstraint("po_id", "idempotency_key", name="uq_po_receipts_idempotency"),
        Index("idx_po_receipts_po", "po_id"),
    )

    po_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False)
    received_date: Mapped[date] = mapped_column(Date, nullable=False)
    received_by: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    items: Mapped[list["ReceiptItem"]] = relationship(
        "ReceiptItem",
        back_populates="receipt",
        order_by="ReceiptItem.line_number",
        lazy="selectin",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Receipt {self.receipt_number}>"


class ReceiptItem(Base):
    __tablename__ = "po_receipt_items"

    __table_args__ = (
        CheckConstraint(
            "quantity_received > 0", name="ck_po_receipt_items_quantity_positive"
        ),
        UniqueConstraint("receipt_id", "line_number", name="uq_po_receipt_items_line"),
        Index("idx_po_receipt_items_po_item", "po_item_id"),
    )

    receipt_id: Mapped[UUID] = mapped_column(ForeignKey("po_receipts.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    po_item_id: Mapped[UUID] = mapped_column(ForeignKey("po_items.id"), nullable=False)
    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("product_variants.id"), nullable=True
    )
    quantity_received: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False)
    condition: Mapped[str] = mapped_column(String(20), nullable=False, default="good")
    over_receipt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    movement_id: Mapped[UUID] = mapped_column(
        ForeignKey("stock_movements.id"), nullable=False
    )

    receipt: Mapped[Receipt] = relationship(
        "Receipt", back_populates="items", viewonly=True
    )

    def __repr__(self) -> str:
        return f"<ReceiptItem line={self.line_number} qty={self.quantity_received}>"
