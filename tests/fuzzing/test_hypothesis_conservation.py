"""
Hypothesis-based property tests.

Properties checked:
- Conservation: after any sequence of movements, on-hand stock equals the
  sum of the ledger (strict) or the zero-floored replay of it (clamp).
- Strict rejections change nothing: stock, ledger and history are as
  before the rejected call.
- Sign policy: the recorded delta always has the sign its type dictates.
- Status derivation is monotonic in the received total.
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from stock_kernel.domain.movement import (
    INBOUND_TYPES,
    OUTBOUND_TYPES,
    MovementType,
    signed_delta,
)
from stock_kernel.domain.po_status import POStatus, resolve_status
from stock_kernel.domain.policy import LedgerPolicy, NegativeStockPolicy
from stock_kernel.exceptions import InsufficientStockError
from stock_kernel.selectors.stock_selector import StockSelector
from stock_services.inventory_service import InventoryService

DB_SETTINGS = settings(
    max_examples=30,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture, HealthCheck.too_slow],
)

magnitudes = st.integers(min_value=1, max_value=40)


@st.composite
def movements(draw):
    movement_type = draw(st.sampled_from(list(MovementType)))
    quantity = draw(magnitudes)
    if movement_type is MovementType.ADJUSTMENT and draw(st.booleans()):
        quantity = -quantity
    return movement_type.value, quantity


class TestSignProperty:

    @given(movement=movements())
    def test_delta_sign_matches_type(self, movement):
        movement_type, quantity = movement
        delta = signed_delta(movement_type, quantity, 9999)
        mtype = MovementType(movement_type)
        if mtype in INBOUND_TYPES:
            assert delta == quantity > 0
        elif mtype in OUTBOUND_TYPES:
            assert delta == -quantity < 0
        else:
            assert delta == quantity
        assert abs(delta) == abs(quantity)


class TestStatusProperty:

    @given(
        ordered=st.integers(min_value=1, max_value=1000),
        received=st.integers(min_value=0, max_value=2000),
        more=st.integers(min_value=0, max_value=500),
    )
    def test_receiving_never_moves_status_backwards(self, ordered, received, more):
        rank = {POStatus.SENT: 0, POStatus.PARTIAL: 1, POStatus.RECEIVED: 2}
        before = resolve_status(POStatus.SENT, ordered, received, 1)
        after = resolve_status(before, ordered, received + more, 1)
        assert rank[after] >= rank[before]


class TestConservation:

    @DB_SETTINGS
    @given(opening=st.integers(min_value=0, max_value=30), ops=st.lists(movements(), max_size=15))
    def test_strict_stock_equals_ledger(self, session, make_product, opening, ops):
        product = make_product(stock=opening)
        service = InventoryService(session, policy=LedgerPolicy())
        expected = opening

        for movement_type, quantity in ops:
            delta = signed_delta(movement_type, quantity, 9999)
            if expected + delta < 0:
                history = service.get_stock_movements(product.id, limit=1000)
                with pytest.raises(InsufficientStockError):
                    service.record_movement(product.id, None, movement_type, quantity)
                assert service.get_current_stock(product.id) == expected
                assert service.get_stock_movements(product.id, limit=1000) == history
            else:
                service.record_movement(product.id, None, movement_type, quantity)
                expected += delta

        assert service.get_current_stock(product.id) == expected
        assert StockSelector(session).ledger_total(product.id) == expected

    @DB_SETTINGS
    @given(opening=st.integers(min_value=0, max_value=30), ops=st.lists(movements(), max_size=15))
    def test_clamp_stock_equals_floored_replay(self, session, make_product, opening, ops):
        product = make_product(stock=opening)
        service = InventoryService(
            session, policy=LedgerPolicy(negative_stock=NegativeStockPolicy.CLAMP)
        )
        floored = opening
        total = opening

        for movement_type, quantity in ops:
            delta = signed_delta(movement_type, quantity, 9999)
            service.record_movement(product.id, None, movement_type, quantity)
            floored = max(floored + delta, 0)
            total += delta

        assert service.get_current_stock(product.id) == floored
        assert StockSelector(session).ledger_total(product.id) == total
        assert len(service.get_stock_movements(product.id, limit=1000)) == len(ops) + (1 if opening else 0)
