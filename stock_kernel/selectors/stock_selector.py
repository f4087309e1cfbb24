"""
StockSelector -- read side of the stock ledger.

Current on-hand quantities come straight from the holder row (a fresh
column SELECT, never a possibly-stale ORM attribute).  Ledger totals and
history come from ``stock_movements``.
"""

from uuid import UUID

from sqlalchemy import exists, func, select

from stock_kernel.domain.dtos import LowStockRow, MovementRecord
from stock_kernel.domain.movement import MovementType
from stock_kernel.exceptions import ProductNotFoundError, VariantNotFoundError
from stock_kernel.models.product import Product, ProductVariant
from stock_kernel.models.stock_movement import StockMovement
from stock_kernel.selectors.base import BaseSelector

DEFAULT_HISTORY_LIMIT = 50


class StockSelector(BaseSelector[StockMovement]):

    def current_stock(self, product_id: UUID, variant_id: UUID | None = None) -> int:
        """On-hand quantity of the stock holder."""
        if variant_id is not None:
            value = self.session.execute(
                select(ProductVariant.current_stock).where(
                    ProductVariant.id == variant_id,
                    ProductVariant.product_id == product_id,
                )
            ).scalar_one_or_none()
            if value is None:
                raise VariantNotFoundError(str(variant_id), str(product_id))
            return value

        value = self.session.execute(
            select(Product.current_stock).where(Product.id == product_id)
        ).scalar_one_or_none()
        if value is None:
            raise ProductNotFoundError(str(product_id))
        return value

    def ledger_total(self, product_id: UUID, variant_id: UUID | None = None) -> int:
        """
        Sum of signed movement quantities for the holder.

        Product-level totals only count movements without a variant, because
        variant movements move variant stock.
        """
        stmt = select(func.coalesce(func.sum(StockMovement.quantity), 0)).where(
            StockMovement.product_id == product_id
        )
        if variant_id is None:
            stmt = stmt.where(StockMovement.variant_id.is_(None))
        else:
            stmt = stmt.where(StockMovement.variant_id == variant_id)
        return int(self.session.execute(stmt).scalar_one())

    def movement_history(
        self,
        product_id: UUID,
        variant_id: UUID | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[MovementRecord]:
        """Most recent movements first.  Without a variant, all of the product's."""
        stmt = select(StockMovement).where(StockMovement.product_id == product_id)
        if variant_id is not None:
            stmt = stmt.where(StockMovement.variant_id == variant_id)
        stmt = stmt.order_by(
            StockMovement.created_at.desc(), StockMovement.seq.desc()
        ).limit(limit)

        return [
            MovementRecord(
                id=m.id,
                seq=m.seq,
                product_id=m.product_id,
                variant_id=m.variant_id,
                movement_type=MovementType(m.movement_type),
                quantity=m.quantity,
                stock_after=m.stock_after,
                reference_type=m.reference_type,
                reference_id=m.reference_id,
                reason=m.reason,
                created_by=m.created_by,
                created_at=m.created_at,
            )
            for m in self.session.execute(stmt).scalars()
        ]

    def low_stock(self, default_threshold: int) -> list[LowStockRow]:
        """
        Active products and variants at or below their minimum stock level.

        A holder without ``min_stock_level`` uses ``default_threshold``.
        A product with active variants is reported through its variants
        only; its own ``current_stock`` does not carry that stock.
        Ordered by current stock, lowest first.
        """
        rows: list[LowStockRow] = []

        product_threshold = func.coalesce(Product.min_stock_level, default_threshold)
        has_active_variants = exists().where(
            ProductVariant.product_id == Product.id,
            ProductVariant.is_active.is_(True),
        )
        for product_id, sku, name, stock, threshold in self.session.execute(
            select(
                Product.id,
                Product.sku,
                Product.name,
                Product.current_stock,
                product_threshold,
            ).where(
                Product.is_active.is_(True),
                Product.current_stock <= product_threshold,
                ~has_active_variants,
            )
        ):
            rows.append(_low_stock_row(product_id, None, sku, name, stock, threshold))

        variant_threshold = func.coalesce(ProductVariant.min_stock_level, default_threshold)
        for product_id, variant_id, sku, name, stock, threshold in self.session.execute(
            select(
                ProductVariant.product_id,
                ProductVariant.id,
                ProductVariant.sku,
                ProductVariant.variant_name,
                ProductVariant.current_stock,
                variant_threshold,
            ).where(
                ProductVariant.is_active.is_(True),
                ProductVariant.current_stock <= variant_threshold,
            )
        ):
            rows.append(_low_stock_row(product_id, variant_id, sku, name, stock, threshold))

        rows.sort(key=lambda r: (r.current_stock, r.sku))
        return rows


def _low_stock_row(product_id, variant_id, sku, name, stock, threshold) -> LowStockRow:
    return LowStockRow(
        product_id=product_id,
        variant_id=variant_id,
        sku=sku,
        name=name,
        current_stock=stock,
        min_stock_level=int(threshold),
        status="out_of_stock" if stock == 0 else "low_stock",
    )
