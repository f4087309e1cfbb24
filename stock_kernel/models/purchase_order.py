"""
Purchase orders and their line items.

``PurchaseOrder.status`` is partly derived: draft, sent and cancelled are set
administratively, partial and received only by PurchaseOrderStatusResolver.
``PurchaseOrderItem.quantity_received`` is the one mutable receiving
aggregate; ReceivingCoordinator increments it with column arithmetic and it
never decreases (ORM listener + positive increments).

Invariants enforced:
    - ``po_number`` is unique.
    - ``quantity_ordered > 0``, ``quantity_received >= 0`` (CHECK).
    - All money columns are Decimal (Numeric(38,9)).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
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

from stock_kernel.db.base import Base, TrackedBase


class PurchaseOrder(TrackedBase):
    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_orders_po_number"),
        Index("idx_purchase_orders_supplier", "supplier_id"),
        Index("idx_purchase_orders_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    # Supplier lives in an external system; opaque reference, no FK.
    supplier_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    freight_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    duty_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    other_costs: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        order_by="PurchaseOrderItem.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} [{self.status}]>"


class PurchaseOrderItem(Base):
    __tablename__ = "po_items"

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_items_ordered_positive"),
        CheckConstraint("quantity_received >= 0", name="ck_po_items_received_nonneg"),
        CheckConstraint("quantity_invoiced >= 0", name="ck_po_items_invoiced_nonneg"),
        UniqueConstraint("po_id", "line_number", name="uq_po_items_line"),
        Index("idx_po_items_product", "product_id"),
    )

    po_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("product_variants.id"), nullable=True
    )
    quantity_ordered: Mapped[int] = mapped_column(BigInteger, nullable=False)
    quantity_received: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    quantity_invoiced: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    purchase_order: Mapped[PurchaseOrder] = relationship(
        "PurchaseOrder", back_populates="items"
    )

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderItem line={self.line_number} "
            f"{self.quantity_received}/{self.quantity_ordered}>"
        )
