"""
In-memory store with unit-of-work semantics

Used for local runs (STORE_BACKEND=memory) and tests. All shared state
lives in one InMemoryStore guarded by a lock:
- inserts (customers, products, orders) are staged in the unit of work
  and only become visible on commit
- stock changes are staged as per-unit deltas. A reservation is also
  recorded in the store's in-flight totals so that racing reservations
  cannot both take the same units. Other readers only see committed
  stock; commit applies the deltas, rollback releases the reservations
- a reservation that only fits once other in-flight reservations are
  released waits for them (like a PostgreSQL row lock), bounded by the
  lock timeout

For multi-process deployments use the PostgreSQL backend.
"""
import itertools
import logging
import threading
import time
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import (
    DuplicateCustomer,
    InsufficientStock,
    ProductNotFound,
    TransientStoreFailure,
)
from app.domain.order import Customer, CustomerCreate, Order, OrderCreate
from app.domain.product import Product, ProductCreate
from app.repositories.unit_of_work import (
    CustomerRepository,
    InventoryLedger,
    OrderRepository,
    ProductRepository,
    StockRequest,
    UnitOfWork,
    aggregate_demand,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore:
    """
    Thread-safe in-memory tables for customers, products and orders
    """

    def __init__(
        self,
        customers: Iterable[Customer] = (),
        products: Iterable[Product] = (),
        lock_timeout: Optional[float] = None,
    ):
        self._lock = threading.RLock()
        self._released = threading.Condition(self._lock)
        self._lock_timeout = lock_timeout
        self.customers: Dict[int, Customer] = {c.id: c for c in customers}
        self.products: Dict[int, Product] = {p.id: p for p in products}
        self.orders: Dict[int, Order] = {}
        # units reserved by uncommitted units of work, per product
        self.reserved: Counter = Counter()
        self._sequences = {
            "customers": itertools.count(max(self.customers, default=0) + 1),
            "products": itertools.count(max(self.products, default=0) + 1),
            "orders": itertools.count(1),
        }

    @contextmanager
    def locked(self, bounded: bool = True):
        """
        Hold the store lock; a timeout aborts the unit of work.

        With bounded=False the lock is waited for indefinitely. Rollback
        uses this so that releasing reservations can never be skipped.
        """
        timeout = self._lock_timeout if bounded and self._lock_timeout else -1
        if not self._lock.acquire(timeout=timeout):
            raise TransientStoreFailure("Timed out waiting for the in-memory store lock")
        try:
            yield
        finally:
            self._lock.release()

    def deadline(self) -> Optional[float]:
        if not self._lock_timeout:
            return None
        return time.monotonic() + self._lock_timeout

    def wait_for_release(self, deadline: Optional[float]) -> bool:
        """Wait (holding the lock) until some unit of work commits or rolls back"""
        if deadline is None:
            self._released.wait()
            return True
        remaining = deadline - time.monotonic()
        return remaining > 0 and self._released.wait(timeout=remaining)

    def notify_released(self) -> None:
        self._released.notify_all()

    def next_id(self, table: str) -> int:
        with self.locked():
            return next(self._sequences[table])

    def unit_of_work(self) -> "MemoryUnitOfWork":
        return MemoryUnitOfWork(self)

    def stock_of(self, product_id: int) -> int:
        """Committed stock level of a product"""
        with self.locked():
            return self.products[product_id].stock


class MemoryUnitOfWork(UnitOfWork):
    """Unit of work over an InMemoryStore"""

    def __init__(self, store: InMemoryStore):
        super().__init__()
        self.store = store
        self.pending_customers: Dict[int, Customer] = {}
        self.pending_products: Dict[int, Product] = {}
        self.pending_orders: Dict[int, Order] = {}
        self.stock_deltas: Counter = Counter()
        self.held: Counter = Counter()

    def begin(self) -> None:
        self._clear()

        self.customers = MemoryCustomerRepository(self)
        self.products = MemoryProductRepository(self)
        self.orders = MemoryOrderRepository(self)
        self.ledger = MemoryInventoryLedger(self)

    def _clear(self) -> None:
        self.pending_customers.clear()
        self.pending_products.clear()
        self.pending_orders.clear()
        self.stock_deltas.clear()
        self.held.clear()

    def _commit(self) -> None:
        with self.store.locked():
            taken = {customer.email for customer in self.store.customers.values()}
            for customer in self.pending_customers.values():
                if customer.email in taken:
                    raise DuplicateCustomer(customer.email)
            now = _now()
            for product_id, delta in self.stock_deltas.items():
                product = self.store.products[product_id]
                self.store.products[product_id] = product.model_copy(
                    update={'stock': product.stock + delta, 'updated_at': now}
                )
            self._release_held()
            self.store.customers.update(self.pending_customers)
            self.store.products.update(self.pending_products)
            self.store.orders.update(self.pending_orders)
        logger.debug(
            f"Committed {len(self.pending_orders)} order(s), "
            f"{len(self.stock_deltas)} stock change(s)"
        )
        self._clear()

    def rollback(self) -> None:
        if self.held:
            with self.store.locked(bounded=False):
                self._release_held()
            logger.debug(f"Released {len(self.held)} stock reservation(s)")
        self._clear()

    def _release_held(self) -> None:
        # caller holds the store lock
        if not self.held:
            return
        self.store.reserved.subtract(self.held)
        for product_id in list(self.held):
            if self.store.reserved[product_id] <= 0:
                del self.store.reserved[product_id]
        self.store.notify_released()

    # Helpers shared by the repositories (callers hold the store lock)

    def product(self, product_id: int) -> Optional[Product]:
        """The product as this unit of work sees it: committed state plus its own changes"""
        if product_id in self.pending_products:
            return self.pending_products[product_id]
        product = self.store.products.get(product_id)
        delta = self.stock_deltas.get(product_id)
        if product is None or not delta:
            return product
        return product.model_copy(update={'stock': product.stock + delta})

    def reserved_by_others(self, product_id: int) -> int:
        return self.store.reserved[product_id] - self.held[product_id]

    def adjust_stock(self, product_id: int, delta: int) -> Product:
        if product_id in self.pending_products:
            product = self.pending_products[product_id]
            updated = product.model_copy(update={'stock': product.stock + delta, 'updated_at': _now()})
            self.pending_products[product_id] = updated
            return updated

        self.stock_deltas[product_id] += delta
        if delta < 0:
            self.held[product_id] -= delta
            self.store.reserved[product_id] -= delta
        return self.product(product_id)


class MemoryCustomerRepository(CustomerRepository):

    def __init__(self, uow: MemoryUnitOfWork):
        self.uow = uow

    def find_by_id(self, customer_id: int) -> Optional[Customer]:
        with self.uow.store.locked():
            if customer_id in self.uow.pending_customers:
                return self.uow.pending_customers[customer_id]
            return self.uow.store.customers.get(customer_id)

    def find_by_email(self, email: str) -> Optional[Customer]:
        email = email.strip().lower()
        with self.uow.store.locked():
            for customer in itertools.chain(
                self.uow.pending_customers.values(),
                self.uow.store.customers.values(),
            ):
                if customer.email == email:
                    return customer
        return None

    def create(self, data: CustomerCreate) -> Customer:
        if self.find_by_email(data.email) is not None:
            raise DuplicateCustomer(data.email.strip().lower())

        customer = Customer(
            id=self.uow.store.next_id("customers"),
            email=data.email.strip().lower(),
            name=data.name.strip(),
            location_code=data.location_code.strip(),
            created_at=_now(),
        )
        self.uow.pending_customers[customer.id] = customer
        return customer


class MemoryProductRepository(ProductRepository):

    def __init__(self, uow: MemoryUnitOfWork):
        self.uow = uow

    def find_by_id(self, product_id: int) -> Optional[Product]:
        with self.uow.store.locked():
            return self.uow.product(product_id)

    def find_by_ids(self, product_ids: Iterable[int]) -> List[Product]:
        with self.uow.store.locked():
            found = (self.uow.product(product_id) for product_id in sorted(set(product_ids)))
            return [product for product in found if product is not None]

    def find_all(self, limit: int = 100, offset: int = 0) -> Tuple[List[Product], int]:
        with self.uow.store.locked():
            product_ids = sorted({*self.uow.store.products, *self.uow.pending_products})
            products = [self.uow.product(product_id) for product_id in product_ids]
        return products[offset:offset + limit], len(products)

    def create(self, data: ProductCreate) -> Product:
        now = _now()
        product = Product(
            id=self.uow.store.next_id("products"),
            name=data.name,
            description=data.description,
            price=data.price,
            stock=data.stock,
            category=data.category,
            created_at=now,
            updated_at=now,
        )
        self.uow.pending_products[product.id] = product
        return product


class MemoryOrderRepository(OrderRepository):

    def __init__(self, uow: MemoryUnitOfWork):
        self.uow = uow

    def find_by_id(self, order_id: int) -> Optional[Order]:
        with self.uow.store.locked():
            if order_id in self.uow.pending_orders:
                return self.uow.pending_orders[order_id]
            return self.uow.store.orders.get(order_id)

    def create(self, data: OrderCreate) -> Order:
        order = Order(
            id=self.uow.store.next_id("orders"),
            customer_id=data.customer_id,
            items=list(data.items),
            pricing=data.pricing,
            created_at=data.created_at,
        )
        self.uow.pending_orders[order.id] = order
        return order


class MemoryInventoryLedger(InventoryLedger):

    def __init__(self, uow: MemoryUnitOfWork):
        self.uow = uow

    def reserve(self, items: Sequence[StockRequest]) -> None:
        """
        Check every product, then decrement every product, under one lock.

        Stock held by other uncommitted units of work is not available.
        When the request only fits once those reservations are released,
        wait for them to commit or roll back, then check again.
        """
        demand = aggregate_demand(items)
        store = self.uow.store
        deadline = store.deadline()
        with store.locked():
            while not self._fits(demand):
                if not store.wait_for_release(deadline):
                    raise TransientStoreFailure(
                        "Timed out waiting for stock reserved by another unit of work"
                    )
            for product_id, quantity in demand:
                self.uow.adjust_stock(product_id, -quantity)

    def _fits(self, demand: List[Tuple[int, int]]) -> bool:
        """True when every product can be reserved now; raises when one never can"""
        fits = True
        for product_id, quantity in demand:
            product = self.uow.product(product_id)
            if product is None or product.stock < quantity:
                raise InsufficientStock(
                    product_id,
                    requested=quantity,
                    available=product.stock if product else None,
                )
            if product_id not in self.uow.pending_products:
                if product.stock - self.uow.reserved_by_others(product_id) < quantity:
                    fits = False
        return fits

    def restock(self, product_id: int, amount: int) -> Product:
        with self.uow.store.locked():
            if self.uow.product(product_id) is None:
                raise ProductNotFound(product_id)
            return self.uow.adjust_stock(product_id, amount)
