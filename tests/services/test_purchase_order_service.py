"""
Purchase-order creation and administrative status changes.
"""

import re
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.dtos import PurchaseOrderLineInput
from stock_kernel.domain.po_status import POStatus
from stock_kernel.exceptions import (
    InvalidQuantityError,
    InvalidStatusTransitionError,
    MissingFieldError,
    ProductNotFoundError,
    PurchaseOrderNotFoundError,
    ResolverOwnedStatusError,
    ValidationError,
    VariantNotFoundError,
)
from stock_kernel.services.purchase_order_service import PurchaseOrderService


@pytest.fixture
def po_service(session, deterministic_clock):
    return PurchaseOrderService(session, clock=deterministic_clock)


def _create(po_service, items, **kwargs):
    kwargs.setdefault("supplier_id", "SUP-1")
    kwargs.setdefault("order_date", date(2024, 1, 10))
    kwargs.setdefault("created_by", "buyer-1")
    return po_service.create_purchase_order(items=items, **kwargs)


class TestCreate:

    def test_totals_and_lines(self, po_service, po_selector, make_product):
        a, b = make_product(), make_product()
        po_id = _create(
            po_service,
            [
                PurchaseOrderLineInput(a.id, 10, Decimal("2.50"), description="Small"),
                PurchaseOrderLineInput(b.id, 3, Decimal("4.00")),
            ],
            freight_cost=Decimal("5.00"),
            duty_cost=Decimal("1.25"),
            other_costs=Decimal("0.75"),
            expected_date=date(2024, 1, 20),
        )

        po = po_selector.get(po_id)
        assert po.status is POStatus.DRAFT
        assert po.subtotal == Decimal("37.00")
        assert po.total_cost == Decimal("44.00")
        assert po.expected_date == date(2024, 1, 20)
        assert [i.quantity_ordered for i in po.items] == [10, 3]
        assert [i.total_cost for i in po.items] == [Decimal("25.00"), Decimal("12.00")]
        assert po.items[0].description == "Small"
        assert all(i.quantity_received == 0 for i in po.items)
        assert po.total_ordered == 13

    def test_generated_po_number(self, po_service, po_selector, make_product):
        product = make_product()
        first = _create(po_service, [PurchaseOrderLineInput(product.id, 1, Decimal("1"))])
        second = _create(po_service, [PurchaseOrderLineInput(product.id, 1, Decimal("1"))])

        first_number = po_selector.get(first).po_number
        second_number = po_selector.get(second).po_number
        assert re.fullmatch(r"PO-\d{8}", first_number)
        assert second_number > first_number

    def test_explicit_po_number(self, po_service, po_selector, make_product):
        product = make_product()
        po_id = _create(
            po_service, [PurchaseOrderLineInput(product.id, 1, Decimal("1"))], po_number="LEGACY-7"
        )
        assert po_selector.get(po_id).po_number == "LEGACY-7"

    def test_variant_line(self, po_service, po_selector, make_product, make_variant):
        product = make_product()
        variant = make_variant(product)
        po_id = _create(
            po_service, [PurchaseOrderLineInput(product.id, 2, Decimal("1"), variant_id=variant.id)]
        )
        assert po_selector.get(po_id).items[0].variant_id == variant.id

    @pytest.mark.parametrize("field", ["supplier_id", "created_by", "order_date"])
    def test_missing_header_fields(self, po_service, make_product, field):
        product = make_product()
        with pytest.raises(MissingFieldError) as exc_info:
            _create(po_service, [PurchaseOrderLineInput(product.id, 1, Decimal("1"))], **{field: None})
        assert exc_info.value.field_name == field

    def test_no_items(self, po_service):
        with pytest.raises(MissingFieldError):
            _create(po_service, [])

    @pytest.mark.parametrize("qty", [0, -1, 2.5, True])
    def test_bad_quantity(self, po_service, make_product, qty):
        product = make_product()
        with pytest.raises(InvalidQuantityError):
            _create(po_service, [PurchaseOrderLineInput(product.id, qty, Decimal("1"))])

    @pytest.mark.parametrize("cost", [Decimal("-0.01"), "free", "Infinity"])
    def test_bad_unit_cost(self, po_service, make_product, cost):
        product = make_product()
        with pytest.raises(ValidationError):
            _create(po_service, [PurchaseOrderLineInput(product.id, 1, cost)])

    def test_negative_freight(self, po_service, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            _create(
                po_service,
                [PurchaseOrderLineInput(product.id, 1, Decimal("1"))],
                freight_cost=Decimal("-5"),
            )

    def test_unknown_product(self, po_service):
        with pytest.raises(ProductNotFoundError):
            _create(po_service, [PurchaseOrderLineInput(uuid4(), 1, Decimal("1"))])

    def test_variant_of_other_product(self, po_service, make_product, make_variant):
        product, other = make_product(), make_product()
        variant = make_variant(other)
        with pytest.raises(VariantNotFoundError):
            _create(
                po_service,
                [PurchaseOrderLineInput(product.id, 1, Decimal("1"), variant_id=variant.id)],
            )


class TestSetStatus:

    @pytest.fixture
    def draft_po(self, make_product, make_po):
        return make_po([(make_product(), 5)], status="draft")

    def test_send_with_approval_stamps_approver(self, po_service, po_selector, draft_po, deterministic_clock):
        change = po_service.set_status(draft_po.id, "sent", "manager-1", approve=True)

        assert change.changed is True
        assert change.status is POStatus.SENT
        po = po_selector.get(draft_po.id)
        assert po.status is POStatus.SENT
        assert po.approved_by == "manager-1"
        assert po.approved_at.replace(tzinfo=None) == deterministic_clock.now().replace(tzinfo=None)

    def test_send_without_approval(self, po_service, po_selector, draft_po):
        po_service.set_status(draft_po.id, POStatus.SENT, "buyer-1")
        po = po_selector.get(draft_po.id)
        assert po.status is POStatus.SENT
        assert po.approved_by is None

    def test_cancel_stamps_canceller(self, po_service, po_selector, draft_po):
        po_service.set_status(draft_po.id, "cancelled", "manager-2")
        po = po_selector.get(draft_po.id)
        assert po.status is POStatus.CANCELLED
        assert po.cancelled_by == "manager-2"
        assert po.cancelled_at is not None

    def test_same_status_is_noop(self, po_service, draft_po):
        change = po_service.set_status(draft_po.id, "draft", "buyer-1")
        assert change.changed is False
        assert change.status is POStatus.DRAFT

    def test_cancelled_is_terminal(self, po_service, draft_po):
        po_service.set_status(draft_po.id, "cancelled", "manager-2")
        with pytest.raises(InvalidStatusTransitionError):
            po_service.set_status(draft_po.id, "sent", "manager-2")

    def test_cannot_go_back_to_draft(self, po_service, draft_po):
        po_service.set_status(draft_po.id, "sent", "buyer-1")
        with pytest.raises(InvalidStatusTransitionError):
            po_service.set_status(draft_po.id, "draft", "buyer-1")

    @pytest.mark.parametrize("status", ["partial", "received"])
    def test_resolver_owned_statuses_refused(self, po_service, po_selector, draft_po, status):
        with pytest.raises(ResolverOwnedStatusError):
            po_service.set_status(draft_po.id, status, "buyer-1")
        assert po_selector.get(draft_po.id).status is POStatus.DRAFT

    def test_unknown_status_string(self, po_service, draft_po):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            po_service.set_status(draft_po.id, "shipped", "buyer-1")
        assert exc_info.value.to_status == "shipped"

    def test_unknown_po(self, po_service):
        with pytest.raises(PurchaseOrderNotFoundError):
            po_service.set_status(uuid4(), "sent", "buyer-1")

    def test_user_required(self, po_service, draft_po):
        with pytest.raises(MissingFieldError):
            po_service.set_status(draft_po.id, "sent", "")

    def test_change_logged(self, po_service, draft_po, captured_logs):
        po_service.set_status(draft_po.id, "sent", "buyer-1", approve=True)
        records = [r for r in captured_logs() if r["message"] == "po_status_changed"]
        assert records[-1]["from_status"] == "draft"
        assert records[-1]["to_status"] == "sent"
        assert records[-1]["approved"] is True
        assert records[-1]["po_id"] == str(draft_po.id)
