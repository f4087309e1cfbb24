#!/usr/bin/env python3
"""
Seed the database with a small catalog, opening stock and a received PO.

Drops all tables, recreates them, books opening stock as ``found``
movements, creates a purchase order, sends it, receives it in two
deliveries and records a few sales.  Finishes with a consistency check.

Usage:
    python3 scripts/seed_data.py
    STOCK_LEDGER_DATABASE_URL=postgresql://... python3 scripts/seed_data.py
"""

import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

CATALOG = [
    # sku, name, opening stock, min level
    ("WID-0001", "Widget, small", 40, 10),
    ("WID-0002", "Widget, large", 12, None),
    ("GAD-0001", "Gadget", 3, 5),
]


def main() -> int:
    logging.disable(logging.CRITICAL)

    from stock_config import get_active_config
    from stock_kernel.db.engine import (
        create_tables,
        drop_tables,
        get_session,
        init_engine_from_url,
    )
    from stock_kernel.db.immutability import register_immutability_listeners
    from stock_kernel.domain.dtos import PurchaseOrderLineInput, ReceiptLine
    from stock_kernel.models.product import Product
    from stock_kernel.services.sequence_service import SequenceService
    from stock_services import InventoryService, StockReconciliationService
    from stock_config.bridges import build_ledger_policy

    config = get_active_config()

    print()
    print(f"  [1/6] Connecting to {config.database_url} ...")
    try:
        init_engine_from_url(
            config.database_url,
            sqlite_busy_timeout=config.sqlite_busy_timeout_seconds,
        )
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    print("  [2/6] Dropping old tables and recreating schema...")
    drop_tables()
    create_tables()
    register_immutability_listeners()

    session = get_session()
    try:
        SequenceService(session).initialize_sequences()
        products = {}
        for sku, name, _, min_level in CATALOG:
            product = Product(sku=sku, name=name, current_stock=0, min_stock_level=min_level)
            session.add(product)
            products[sku] = product
        session.commit()

        service = InventoryService.from_config(session, config)

        print(f"  [3/6] Booking opening stock for {len(CATALOG)} products...")
        for sku, _, opening, _ in CATALOG:
            service.record_movement(
                products[sku].id, None, "found", opening,
                reason="Opening stock", actor_id="seed",
            )

        print("  [4/6] Creating and sending a purchase order...")
        po_id = service.create_purchase_order(
            supplier_id="SUP-ACME",
            order_date=date(2024, 3, 1),
            expected_date=date(2024, 3, 15),
            items=[
                PurchaseOrderLineInput(products["WID-0001"].id, 10, Decimal("2.50")),
                PurchaseOrderLineInput(products["GAD-0001"].id, 5, Decimal("19.00")),
            ],
            created_by="seed",
            freight_cost=Decimal("12.00"),
        )
        service.set_purchase_order_status(po_id, "sent", "seed", {"approve": True})
        po = service.get_purchase_order(po_id)
        widget_line, gadget_line = po.items

        print("  [5/6] Receiving two deliveries and recording sales...")
        first = service.receive_purchase_order_items(
            po_id, date(2024, 3, 10), "seed",
            [
                ReceiptLine(widget_line.id, widget_line.product_id, 6, Decimal("2.50")),
                ReceiptLine(gadget_line.id, gadget_line.product_id, 5, Decimal("19.00")),
            ],
        )
        print(f"         {first.receipt_number}: PO {po.po_number} -> {first.po_status.value}")
        second = service.receive_purchase_order_items(
            po_id, date(2024, 3, 14), "seed",
            [ReceiptLine(widget_line.id, widget_line.product_id, 4, Decimal("2.50"))],
        )
        print(f"         {second.receipt_number}: PO {po.po_number} -> {second.po_status.value}")
        service.record_movement(products["WID-0001"].id, None, "sale", 7, actor_id="seed")
        service.record_movement(products["GAD-0001"].id, None, "sale", 6, actor_id="seed")

        print("  [6/6] Checking consistency...")
        report = StockReconciliationService(session, build_ledger_policy(config)).run()

        print()
        for sku, _, _, _ in CATALOG:
            print(f"    {sku}: {service.get_current_stock(products[sku].id)} on hand")
        for row in service.get_low_stock_products():
            print(f"    {row.sku}: {row.status} ({row.current_stock} <= {row.min_stock_level})")
    finally:
        session.close()

    print()
    print(f"  Done. Consistent: {report.is_consistent}")
    print()
    return 0 if report.is_consistent else 2


if __name__ == "__main__":
    sys.exit(main())
