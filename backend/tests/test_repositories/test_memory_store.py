"""
Unit tests for the in-memory store and its unit of work
"""
import threading
import time

import pytest

from app.core.exceptions import InsufficientStock, TransientStoreFailure
from app.domain.product import ProductCategory, ProductCreate
from app.repositories.memory_store import InMemoryStore
from app.repositories.unit_of_work import aggregate_demand, build_unit_of_work_factory

from conftest import make_product


class TestAggregateDemand:

    def test_sums_duplicates_in_first_seen_order(self):
        assert aggregate_demand([(3, 1), (1, 2), (3, 4)]) == [(3, 5), (1, 2)]


class TestMemoryUnitOfWork:

    def test_leaving_without_commit_rolls_back(self, store):
        with store.unit_of_work() as uow:
            uow.ledger.reserve([(1, 10), (2, 3)])
            assert uow.products.find_by_id(1).stock == 90

        assert store.stock_of(1) == 100
        assert store.stock_of(2) == 10

    def test_exception_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.unit_of_work() as uow:
                uow.ledger.reserve([(1, 10)])
                raise RuntimeError("boom")

        assert store.stock_of(1) == 100

    def test_commit_keeps_changes(self, store):
        with store.unit_of_work() as uow:
            uow.ledger.reserve([(1, 10)])
            uow.commit()

        assert store.stock_of(1) == 90

    def test_reserve_is_all_or_nothing(self, store):
        with store.unit_of_work() as uow:
            with pytest.raises(InsufficientStock) as exc_info:
                uow.ledger.reserve([(1, 10), (4, 2)])

            assert exc_info.value.product_id == 4
            assert uow.products.find_by_id(1).stock == 100

    def test_unknown_product_cannot_be_reserved(self, store):
        with store.unit_of_work() as uow:
            with pytest.raises(InsufficientStock):
                uow.ledger.reserve([(999, 1)])

    def test_uncommitted_reservation_is_invisible_to_readers(self, store, catalog_service):
        with store.unit_of_work() as uow:
            uow.ledger.reserve([(4, 1)])

            assert uow.products.find_by_id(4).stock == 0
            assert catalog_service.get_product(4).stock == 1
            assert store.stock_of(4) == 1

        assert store.stock_of(4) == 1
        assert not store.reserved

    def test_request_beyond_committed_stock_fails_at_once(self, store):
        with store.unit_of_work() as first:
            first.ledger.reserve([(4, 1)])

            with store.unit_of_work() as second:
                with pytest.raises(InsufficientStock):
                    second.ledger.reserve([(4, 2)])

    def test_inserts_invisible_until_commit(self, store):
        with store.unit_of_work() as uow:
            product = uow.products.create(ProductCreate(
                name="Lamp", description="Desk lamp", price="12.00", stock=2,
                category=ProductCategory.HOME,
            ))
            assert uow.products.find_by_id(product.id) is not None
            assert product.id not in store.products

        assert product.id not in store.products

    def test_stock_change_on_new_product_stays_pending(self, store):
        with store.unit_of_work() as uow:
            product = uow.products.create(ProductCreate(
                name="Lamp", description="Desk lamp", price="12.00", stock=2,
                category=ProductCategory.HOME,
            ))
            uow.ledger.reserve([(product.id, 2)])
            uow.commit()

        assert store.stock_of(product.id) == 0

    def test_find_all_merges_pending(self, store):
        with store.unit_of_work() as uow:
            uow.products.create(ProductCreate(
                name="Lamp", description="Desk lamp", price="12.00", stock=2,
                category=ProductCategory.HOME,
            ))
            products, total = uow.products.find_all(limit=2, offset=3)

        assert total == 5
        assert [product.id for product in products] == [4, 5]


class TestStoreLock:

    def test_lock_timeout_is_transient(self):
        store = InMemoryStore(products=[make_product(1, "1.00")], lock_timeout=0.05)
        held = threading.Event()
        release = threading.Event()

        def hold_lock():
            with store.locked():
                held.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        held.wait(timeout=5)
        try:
            with pytest.raises(TransientStoreFailure):
                with store.unit_of_work() as uow:
                    uow.ledger.reserve([(1, 1)])
        finally:
            release.set()
            holder.join(timeout=5)

        assert store.stock_of(1) == 100

    def test_rollback_waits_for_a_held_lock(self):
        store = InMemoryStore(products=[make_product(1, "1.00", stock=3)], lock_timeout=0.2)
        held = threading.Event()

        def hold_lock():
            with store.locked():
                held.set()
                time.sleep(0.5)

        holder = threading.Thread(target=hold_lock)
        with pytest.raises(TransientStoreFailure):
            with store.unit_of_work() as uow:
                uow.ledger.reserve([(1, 2)])
                holder.start()
                held.wait(timeout=5)
                # times out while the other thread holds the lock
                uow.ledger.reserve([(1, 1)])
        holder.join(timeout=5)

        assert store.stock_of(1) == 3
        assert not store.reserved
        with store.unit_of_work() as uow:
            uow.ledger.reserve([(1, 3)])
            uow.commit()
        assert store.stock_of(1) == 0

    def test_wait_for_reserved_stock_is_bounded(self):
        store = InMemoryStore(products=[make_product(1, "1.00", stock=1)], lock_timeout=0.1)

        with store.unit_of_work() as first:
            first.ledger.reserve([(1, 1)])

            with pytest.raises(TransientStoreFailure):
                with store.unit_of_work() as second:
                    second.ledger.reserve([(1, 1)])

        assert store.stock_of(1) == 1
        assert not store.reserved


class TestCompetingReservations:
    """A reservation held by an open unit of work makes competitors wait"""

    def start_competitor(self, store, results):
        def take_last_unit():
            try:
                with store.unit_of_work() as uow:
                    uow.ledger.reserve([(4, 1)])
                    uow.commit()
                results.append("ok")
            except InsufficientStock:
                results.append("insufficient")

        thread = threading.Thread(target=take_last_unit)
        thread.start()
        return thread

    def test_competitor_succeeds_after_rollback(self, store):
        results = []

        with store.unit_of_work() as first:
            first.ledger.reserve([(4, 1)])
            competitor = self.start_competitor(store, results)
            competitor.join(timeout=0.2)
            assert competitor.is_alive()
            assert results == []

        competitor.join(timeout=5)
        assert results == ["ok"]
        assert store.stock_of(4) == 0

    def test_competitor_fails_after_commit(self, store):
        results = []

        with store.unit_of_work() as first:
            first.ledger.reserve([(4, 1)])
            competitor = self.start_competitor(store, results)
            competitor.join(timeout=0.2)
            first.commit()

        competitor.join(timeout=5)
        assert results == ["insufficient"]
        assert store.stock_of(4) == 0
        assert not store.reserved


class TestBuildUnitOfWorkFactory:

    def test_memory_backend_with_seed(self):
        factory = build_unit_of_work_factory("memory", seed_demo_data=True)

        with factory() as uow:
            _, total = uow.products.find_all()
            assert total > 0
            assert uow.customers.find_by_email("jan.kowalski@example.com").location_code == "EU"

    def test_memory_backend_shares_one_store(self):
        factory = build_unit_of_work_factory("memory")

        with factory() as uow:
            uow.products.create(ProductCreate(
                name="Lamp", description="Desk lamp", price="12.00", stock=2,
                category=ProductCategory.HOME,
            ))
            uow.commit()

        with factory() as uow:
            assert uow.products.find_all()[1] == 1

    def test_postgres_backend_is_lazy(self):
        from app.repositories.postgres import PostgresUnitOfWork

        factory = build_unit_of_work_factory("postgres", transaction_timeout_ms=100)
        assert isinstance(factory(), PostgresUnitOfWork)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_unit_of_work_factory("mongo")
