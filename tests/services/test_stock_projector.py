"""StockProjector: guarded column arithmetic under strict and clamp policies."""

from uuid import uuid4

import pytest

from stock_kernel.domain.policy import NegativeStockPolicy
from stock_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    VariantNotFoundError,
)
from stock_kernel.services.stock_projector import StockProjector


@pytest.fixture
def strict(session):
    return StockProjector(session, NegativeStockPolicy.STRICT)


@pytest.fixture
def clamp(session):
    return StockProjector(session, NegativeStockPolicy.CLAMP)


class TestStrict:

    def test_adds_and_returns_new_stock(self, strict, make_product):
        product = make_product(stock=5)
        assert strict.apply(product.id, None, 3) == 8

    def test_down_to_exactly_zero(self, strict, make_product):
        product = make_product(stock=5)
        assert strict.apply(product.id, None, -5) == 0

    def test_below_zero_rejected_and_unchanged(self, strict, make_product, stock_selector):
        product = make_product(stock=5)
        with pytest.raises(InsufficientStockError) as exc_info:
            strict.apply(product.id, None, -6)
        assert exc_info.value.available == 5
        assert exc_info.value.requested == 6
        assert stock_selector.current_stock(product.id) == 5

    def test_missing_product(self, strict):
        with pytest.raises(ProductNotFoundError):
            strict.apply(uuid4(), None, 1)

    def test_missing_variant(self, strict, make_product):
        product = make_product()
        with pytest.raises(VariantNotFoundError):
            strict.apply(product.id, uuid4(), 1)

    def test_loaded_instance_is_refreshed(self, strict, session, make_product):
        product = make_product(stock=5)
        assert product.current_stock == 5
        strict.apply(product.id, None, 4)
        assert product.current_stock == 9

    def test_variant_shortage_names_variant(self, strict, make_product, make_variant):
        product = make_product(stock=50)
        variant = make_variant(product, stock=1)
        with pytest.raises(InsufficientStockError) as exc_info:
            strict.apply(product.id, variant.id, -2)
        assert exc_info.value.variant_id == str(variant.id)
        assert exc_info.value.available == 1


class TestClamp:

    def test_floors_at_zero(self, clamp, make_product, stock_selector):
        product = make_product(stock=2)
        assert clamp.apply(product.id, None, -5) == 0
        assert stock_selector.current_stock(product.id) == 0

    def test_positive_delta_unaffected(self, clamp, make_product):
        product = make_product(stock=2)
        assert clamp.apply(product.id, None, 5) == 7

    def test_clamp_logged(self, clamp, make_product, captured_logs):
        product = make_product(stock=2)
        clamp.apply(product.id, None, -5)

        records = [r for r in captured_logs() if r["message"] == "stock_clamped_at_zero"]
        assert len(records) == 1
        assert records[0]["previous_stock"] == 2
        assert records[0]["unapplied"] == 3

    def test_missing_product(self, clamp):
        with pytest.raises(ProductNotFoundError):
            clamp.apply(uuid4(), None, -1)


def test_policy_fixed_at_construction(session):
    projector = StockProjector(session, "clamp")
    assert projector.policy is NegativeStockPolicy.CLAMP
