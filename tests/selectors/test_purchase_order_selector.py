"""PurchaseOrderSelector read paths."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.dtos import ReceiptLine
from stock_kernel.exceptions import PurchaseOrderNotFoundError


def test_get_unknown(po_selector):
    with pytest.raises(PurchaseOrderNotFoundError):
        po_selector.get(uuid4())


def test_view_reflects_receipts(inventory, po_selector, make_product, make_po):
    po = make_po([(make_product(), 10), (make_product(), 5)])
    a, b = po.items
    inventory.receive_purchase_order_items(
        po.id, date(2024, 2, 1), "clerk-1", [ReceiptLine(a.id, a.product_id, 6, Decimal("1"))]
    )

    view = po_selector.get(po.id)
    assert [i.quantity_outstanding for i in view.items] == [4, 5]
    assert (view.total_ordered, view.total_received) == (15, 6)
    assert po_selector.totals(po.id) == (15, 6)


def test_receipts_oldest_first(inventory, po_selector, make_product, make_po, deterministic_clock):
    po = make_po([(make_product(), 10)])
    item = po.items[0]
    first = inventory.receive_purchase_order_items(
        po.id, date(2024, 2, 1), "clerk-1", [ReceiptLine(item.id, item.product_id, 2, Decimal("1"))]
    )
    deterministic_clock.advance(60)
    second = inventory.receive_purchase_order_items(
        po.id, date(2024, 2, 2), "clerk-1", [ReceiptLine(item.id, item.product_id, 3, Decimal("1"))]
    )

    receipts = po_selector.receipts(po.id)
    assert [r.id for r in receipts] == [first.receipt_id, second.receipt_id]
    assert po_selector.received_by_item(po.id) == {item.id: 5}


def test_no_receipts(po_selector, make_product, make_po):
    po = make_po([(make_product(), 1)])
    assert po_selector.receipts(po.id) == []
    assert po_selector.received_by_item(po.id) == {}


def test_all_ids(po_selector, make_product, make_po):
    first = make_po([(make_product(), 1)])
    second = make_po([(make_product(), 1)])
    ids = po_selector.all_ids()
    assert ids.index(first.id) < ids.index(second.id)
