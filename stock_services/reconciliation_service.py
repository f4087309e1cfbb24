"""
stock_services.reconciliation_service -- inventory consistency check.

Responsibility:
    Verifies, read-only, that the derived state still agrees with its
    sources:

    * every stock holder's ``current_stock`` against a replay of its
      movements (a plain sum under the strict policy; a replay floored at
      zero under the clamp policy, where the difference to the plain sum
      is reported as an expected clamp divergence);
    * every PO item's ``quantity_received`` against the sum of its receipt
      items;
    * every purchase order's persisted status against the resolver.

Architecture position:
    Services.  Uses kernel selectors and the resolver; never writes.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.po_status import POStatus
from stock_kernel.domain.policy import LedgerPolicy, NegativeStockPolicy
from stock_kernel.logging_config import get_logger
from stock_kernel.models.product import Product, ProductVariant
from stock_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stock_kernel.models.stock_movement import StockMovement
from stock_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from stock_kernel.services.po_status_resolver import PurchaseOrderStatusResolver

logger = get_logger("services.reconciliation")


@dataclass(frozen=True)
class StockDiscrepancy:
    product_id: UUID
    variant_id: UUID | None
    current_stock: int
    expected_stock: int
    ledger_total: int


@dataclass(frozen=True)
class ReceivingDiscrepancy:
    po_id: UUID
    po_item_id: UUID
    quantity_received: int
    receipt_items_total: int


@dataclass(frozen=True)
class StatusDiscrepancy:
    po_id: UUID
    persisted_status: POStatus
    resolved_status: POStatus


@dataclass(frozen=True)
class ConsistencyReport:
    holders_checked: int
    po_items_checked: int
    purchase_orders_checked: int
    stock_discrepancies: tuple[StockDiscrepancy, ...] = ()
    clamp_divergences: tuple[StockDiscrepancy, ...] = ()
    receiving_discrepancies: tuple[ReceivingDiscrepancy, ...] = ()
    status_discrepancies: tuple[StatusDiscrepancy, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not (
            self.stock_discrepancies
            or self.receiving_discrepancies
            or self.status_discrepancies
        )


class StockReconciliationService:
    """Read-only consistency check over stock, receipts and PO status."""

    def __init__(self, session: Session, policy: LedgerPolicy | None = None):
        self._session = session
        self._policy = policy or LedgerPolicy()
        self._resolver = PurchaseOrderStatusResolver(session)
        self._po_reader = PurchaseOrderSelector(session)

    def run(self) -> ConsistencyReport:
        try:
            stock_issues, clamp_divergences, holders = self._check_stock()
            receiving_issues, items_checked = self._check_receiving()
            status_issues, pos_checked = self._check_status()
            # Nothing was written; ending the transaction releases its locks.
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        report = ConsistencyReport(
            holders_checked=holders,
            po_items_checked=items_checked,
            purchase_orders_checked=pos_checked,
            stock_discrepancies=tuple(stock_issues),
            clamp_divergences=tuple(clamp_divergences),
            receiving_discrepancies=tuple(receiving_issues),
            status_discrepancies=tuple(status_issues),
        )

        log = logger.info if report.is_consistent else logger.warning
        log(
            "inventory_consistency_checked",
            extra={
                "is_consistent": report.is_consistent,
                "holders_checked": holders,
                "po_items_checked": items_checked,
                "purchase_orders_checked": pos_checked,
                "stock_discrepancies": len(stock_issues),
                "clamp_divergences": len(clamp_divergences),
                "receiving_discrepancies": len(receiving_issues),
                "status_discrepancies": len(status_issues),
            },
        )
        return report

    def _check_stock(self):
        clamp = self._policy.negative_stock is NegativeStockPolicy.CLAMP

        totals: dict[tuple[UUID, UUID | None], int] = defaultdict(int)
        replay: dict[tuple[UUID, UUID | None], int] = defaultdict(int)
        for product_id, variant_id, quantity in self._session.execute(
            select(
                StockMovement.product_id,
                StockMovement.variant_id,
                StockMovement.quantity,
            ).order_by(StockMovement.seq)
        ):
            key = (product_id, variant_id)
            totals[key] += quantity
            replay[key] = max(replay[key] + quantity, 0) if clamp else replay[key] + quantity

        holders: list[tuple[UUID, UUID | None, int]] = [
            (pid, None, stock)
            for pid, stock in self._session.execute(
                select(Product.id, Product.current_stock)
            )
        ]
        holders.extend(
            (pid, vid, stock)
            for vid, pid, stock in self._session.execute(
                select(ProductVariant.id, ProductVariant.product_id, ProductVariant.current_stock)
            )
        )

        issues: list[StockDiscrepancy] = []
        divergences: list[StockDiscrepancy] = []
        for product_id, variant_id, stock in holders:
            key = (product_id, variant_id)
            row = StockDiscrepancy(
                product_id=product_id,
                variant_id=variant_id,
                current_stock=stock,
                expected_stock=replay[key],
                ledger_total=totals[key],
            )
            if stock != replay[key]:
                issues.append(row)
            elif stock != totals[key]:
                divergences.append(row)
        return issues, divergences, len(holders)

    def _check_receiving(self):
        issues: list[ReceivingDiscrepancy] = []
        checked = 0
        for po_id in self._po_reader.all_ids():
            received = self._po_reader.received_by_item(po_id)
            for item_id, qty in self._session.execute(
                select(PurchaseOrderItem.id, PurchaseOrderItem.quantity_received)
                .where(PurchaseOrderItem.po_id == po_id)
            ):
                checked += 1
                expected = received.get(item_id, 0)
                if qty != expected:
                    issues.append(
                        ReceivingDiscrepancy(
                            po_id=po_id,
                            po_item_id=item_id,
                            quantity_received=qty,
                            receipt_items_total=expected,
                        )
                    )
        return issues, checked

    def _check_status(self):
        issues: list[StatusDiscrepancy] = []
        rows = self._session.execute(select(PurchaseOrder.id, PurchaseOrder.status)).all()
        for po_id, status in rows:
            resolved = self._resolver.resolve(po_id)
            if resolved.value != status:
                issues.append(
                    StatusDiscrepancy(
                        po_id=po_id,
                        persisted_status=POStatus(status),
                        resolved_status=resolved,
                    )
                )
        return issues, len(rows)
