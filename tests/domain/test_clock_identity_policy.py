"""Clock, id generator and LedgerPolicy value objects."""

import threading
from datetime import UTC, datetime, timedelta, timezone
from uuid import UUID

import pytest

from stock_kernel.domain.clock import DeterministicClock, SystemClock
from stock_kernel.domain.identity import SequentialIdGenerator, UUID4Generator
from stock_kernel.domain.policy import LedgerPolicy, NegativeStockPolicy, OverReceiptPolicy


class TestDeterministicClock:

    def test_default_time(self):
        assert DeterministicClock().now() == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_frozen_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        before = clock.now()
        clock.advance(30)
        assert clock.now() - before == timedelta(seconds=30)

    def test_tick_returns_new_time(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.tick() == start + timedelta(seconds=1)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2025, 6, 1, tzinfo=UTC)
        clock.set_time(target)
        assert clock.now() == target

    def test_now_utc_converts(self):
        plus_two = timezone(timedelta(hours=2))
        clock = DeterministicClock(datetime(2024, 1, 1, 14, 0, tzinfo=plus_two))
        assert clock.now_utc() == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert clock.now_utc().tzinfo == UTC


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None


class TestIdGenerators:

    def test_sequential_ids_are_predictable(self):
        gen = SequentialIdGenerator(start=10)
        assert gen.next_id() == UUID(int=10)
        assert gen.next_id() == UUID(int=11)

    def test_sequential_rejects_negative_start(self):
        with pytest.raises(ValueError):
            SequentialIdGenerator(start=-1)

    def test_sequential_is_thread_safe(self):
        gen = SequentialIdGenerator()
        seen: list[UUID] = []
        lock = threading.Lock()

        def worker():
            ids = [gen.next_id() for _ in range(200)]
            with lock:
                seen.extend(ids)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 1600
        assert len(set(seen)) == 1600

    def test_uuid4_generator(self):
        gen = UUID4Generator()
        first, second = gen.next_id(), gen.next_id()
        assert first != second
        assert first.version == 4


class TestLedgerPolicy:

    def test_defaults(self):
        policy = LedgerPolicy()
        assert policy.negative_stock is NegativeStockPolicy.STRICT
        assert policy.over_receipt is OverReceiptPolicy.FLAG
        assert policy.max_movement_magnitude == 9999
        assert policy.default_min_stock_level == 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_movement_magnitude": 0},
            {"default_min_stock_level": -1},
            {"receipt_number_prefix": ""},
            {"po_number_prefix": ""},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            LedgerPolicy(**kwargs)

    def test_frozen(self):
        policy = LedgerPolicy()
        with pytest.raises(AttributeError):
            policy.negative_stock = NegativeStockPolicy.CLAMP
