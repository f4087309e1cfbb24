"""
Stock holders: products and their variants.

Product and variant rows are owned by the catalog; this kernel only reads
their identity and maintains ``current_stock`` through StockProjector.
When a movement names a variant, the variant row carries the stock;
otherwise the product row does.

Invariants enforced:
    - ``current_stock >= 0`` (database CHECK constraint).  Strict policy never
      attempts a negative write; clamp policy floors at zero in the UPDATE.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base


class Product(Base):
    """A sellable product.  Carries stock when it has no variant in play."""

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_products_current_stock_nonneg"),
        Index("idx_products_active", "is_active"),
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_stock: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    min_stock_level: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    variants: Mapped[list["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product {self.sku} stock={self.current_stock}>"


class ProductVariant(Base):
    """A variant (size, colour, ...) of a product with its own stock."""

    __tablename__ = "product_variants"

    __table_args__ = (
        CheckConstraint(
            "current_stock >= 0", name="ck_product_variants_current_stock_nonneg"
        ),
        Index("idx_product_variants_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    variant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_stock: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    min_stock_level: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    product: Mapped[Product] = relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ProductVariant {self.sku} stock={self.current_stock}>"
