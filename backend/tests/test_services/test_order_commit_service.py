"""
Unit tests for OrderCommitService

Runs the full commit protocol against the in-memory store: lookups,
stock pre-check, pricing, atomic reservation and rollback.

Author: TM3
Date: 2026-10-12
"""
import threading
from decimal import Decimal

import pytest

from app.core.exceptions import (
    CustomerNotFound,
    EmptyOrder,
    InsufficientStock,
    InvalidOrderItem,
    OrderNotFound,
    ProductNotFound,
    TransientStoreFailure,
)
from app.domain.order import OrderItemRequest
from app.domain.pricing import DiscountType
from app.repositories.memory_store import InMemoryStore, MemoryOrderRepository
from app.services.order_commit_service import OrderCommitService
from app.services.pricing_service import PricingService

from conftest import BLACK_FRIDAY, fixed_clock, make_customer, make_product


class TestCommitOrder:

    def test_end_to_end_surcharge_region(self, order_service, store):
        order = order_service.commit_order(2, [(1, 10)])

        assert order.customer_id == 2
        assert order.pricing.base_price == Decimal("575.00")
        assert order.pricing.applied_discount.type == DiscountType.VOLUME
        assert order.pricing.applied_discount.rate == Decimal("0.20")
        assert order.pricing.discount_amount == Decimal("115.00")
        assert order.pricing.final_price == Decimal("460.00")
        assert store.stock_of(1) == 90
        assert store.orders[order.id] == order

    def test_accepts_order_item_requests(self, order_service, store):
        order = order_service.commit_order(1, [
            OrderItemRequest(product_id=1, quantity=1),
            OrderItemRequest(product_id=3, quantity=2),
        ])

        assert [(item.product_id, item.quantity) for item in order.items] == [(1, 1), (3, 2)]
        assert store.stock_of(1) == 99
        assert store.stock_of(3) == 3

    def test_created_at_from_clock(self, store):
        service = OrderCommitService(store.unit_of_work, PricingService(), clock=fixed_clock(BLACK_FRIDAY))

        order = service.commit_order(1, [(1, 1)])

        assert order.created_at.date() == BLACK_FRIDAY
        assert order.pricing.applied_discount.type == DiscountType.BLACK_FRIDAY

    def test_consumes_last_unit(self, order_service, store):
        order_service.commit_order(1, [(4, 1)])

        assert store.stock_of(4) == 0
        with pytest.raises(InsufficientStock):
            order_service.commit_order(1, [(4, 1)])

    def test_duplicate_product_ids_checked_together(self, order_service, store):
        # 3 + 3 exceeds the 5 in stock even though each line fits
        with pytest.raises(InsufficientStock):
            order_service.commit_order(1, [(3, 3), (3, 3)])
        assert store.stock_of(3) == 5

        order = order_service.commit_order(1, [(3, 2), (3, 3)])
        assert len(order.items) == 2
        assert store.stock_of(3) == 0


class TestCommitOrderFailures:

    def test_empty_order(self, order_service):
        with pytest.raises(EmptyOrder):
            order_service.commit_order(1, [])

    @pytest.mark.parametrize("quantity", [0, -3, True])
    def test_invalid_quantity(self, order_service, store, quantity):
        with pytest.raises(InvalidOrderItem):
            order_service.commit_order(1, [(1, quantity)])
        assert store.stock_of(1) == 100

    def test_unknown_customer(self, order_service, store):
        with pytest.raises(CustomerNotFound) as exc_info:
            order_service.commit_order(999, [(1, 1)])

        assert exc_info.value.customer_id == 999
        assert store.stock_of(1) == 100

    def test_first_unknown_product_reported(self, order_service, store):
        with pytest.raises(ProductNotFound) as exc_info:
            order_service.commit_order(1, [(1, 1), (998, 1), (999, 1)])

        assert exc_info.value.product_id == 998
        assert store.stock_of(1) == 100
        assert store.orders == {}

    def test_not_found_wins_over_insufficient_stock(self, order_service):
        with pytest.raises(ProductNotFound):
            order_service.commit_order(1, [(4, 5), (999, 1)])

    def test_pre_check_reports_requested_and_available(self, order_service):
        with pytest.raises(InsufficientStock) as exc_info:
            order_service.commit_order(1, [(2, 11)])

        error = exc_info.value
        assert (error.product_id, error.requested, error.available) == (2, 11, 10)
        assert error.to_dict()["error"] == "insufficient_stock"

    def test_one_short_product_leaves_all_stock_unchanged(self, order_service, store):
        with pytest.raises(InsufficientStock):
            order_service.commit_order(1, [(1, 5), (4, 2)])

        assert store.stock_of(1) == 100
        assert store.stock_of(4) == 1
        assert store.orders == {}

    def test_order_write_failure_restores_stock(self, order_service, store, monkeypatch):
        def fail(self, data):
            raise TransientStoreFailure("write conflict")

        monkeypatch.setattr(MemoryOrderRepository, "create", fail)

        with pytest.raises(TransientStoreFailure) as exc_info:
            order_service.commit_order(1, [(1, 5), (2, 2)])

        assert exc_info.value.retryable
        assert store.stock_of(1) == 100
        assert store.stock_of(2) == 10
        assert store.orders == {}

    def test_stock_taken_after_pre_check(self, store):
        """A competing commit between the pre-check and the reservation wins"""
        competitor = OrderCommitService(store.unit_of_work, PricingService(), clock=fixed_clock())

        class CompetingPricingService(PricingService):
            def price(self, *args, **kwargs):
                competitor.commit_order(2, [(4, 1)])
                return super().price(*args, **kwargs)

        service = OrderCommitService(store.unit_of_work, CompetingPricingService(), clock=fixed_clock())

        with pytest.raises(InsufficientStock):
            service.commit_order(1, [(1, 2), (4, 1)])

        assert store.stock_of(1) == 100
        assert store.stock_of(4) == 0
        assert [order.customer_id for order in store.orders.values()] == [2]


class TestGetOrder:

    def test_found(self, order_service):
        order = order_service.commit_order(1, [(1, 1)])
        assert order_service.get_order(order.id) == order

    def test_not_found(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.get_order(42)


class TestConcurrentCommits:

    def test_two_buyers_one_unit(self, order_service, store):
        barrier = threading.Barrier(2)
        results = []
        lock = threading.Lock()

        def buy(customer_id):
            barrier.wait()
            try:
                order_service.commit_order(customer_id, [(4, 1)])
                outcome = "ok"
            except InsufficientStock:
                outcome = "insufficient"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=buy, args=(customer_id,)) for customer_id in (1, 2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert sorted(results) == ["insufficient", "ok"]
        assert store.stock_of(4) == 0
        assert len(store.orders) == 1

    def test_many_buyers_never_oversell(self):
        stock = 7
        store = InMemoryStore(
            customers=[make_customer(1, "US")],
            products=[make_product(1, "5.00", stock=stock), make_product(2, "1.00", stock=1000)],
            lock_timeout=5.0,
        )
        service = OrderCommitService(store.unit_of_work, PricingService(), clock=fixed_clock())
        buyers = 20
        barrier = threading.Barrier(buyers)
        succeeded = []
        failed = []

        def buy():
            barrier.wait()
            try:
                succeeded.append(service.commit_order(1, [(2, 1), (1, 1)]))
            except InsufficientStock:
                failed.append(1)

        threads = [threading.Thread(target=buy) for _ in range(buyers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(succeeded) == stock
        assert len(failed) == buyers - stock
        assert store.stock_of(1) == 0
        # product 2 only moves together with product 1
        assert store.stock_of(2) == 1000 - stock
        assert len(store.orders) == stock
        assert len({order.id for order in succeeded}) == stock
