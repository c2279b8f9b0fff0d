"""
Unit of Work - transactional boundary for order commits

A unit of work groups the customer read, product reads, the conditional
stock decrement and the order write: either all of them take effect or
none does. Backends:
- PostgresUnitOfWork: one psycopg2 transaction (app.repositories.postgres)
- MemoryUnitOfWork: in-process store for local runs and tests
  (app.repositories.memory_store)

Author: TM3
Date: 2026-10-12
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from app.domain.order import Customer, CustomerCreate, Order, OrderCreate
from app.domain.product import Product, ProductCreate

logger = logging.getLogger(__name__)

StockRequest = Tuple[int, int]  # (product_id, quantity)


class CustomerRepository(ABC):

    @abstractmethod
    def find_by_id(self, customer_id: int) -> Optional[Customer]:
        ...

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[Customer]:
        ...

    @abstractmethod
    def create(self, data: CustomerCreate) -> Customer:
        ...


class ProductRepository(ABC):

    @abstractmethod
    def find_by_id(self, product_id: int) -> Optional[Product]:
        ...

    @abstractmethod
    def find_by_ids(self, product_ids: Iterable[int]) -> List[Product]:
        """Batch lookup; missing IDs are simply absent from the result"""

    @abstractmethod
    def find_all(self, limit: int = 100, offset: int = 0) -> Tuple[List[Product], int]:
        ...

    @abstractmethod
    def create(self, data: ProductCreate) -> Product:
        ...


class OrderRepository(ABC):

    @abstractmethod
    def find_by_id(self, order_id: int) -> Optional[Order]:
        ...

    @abstractmethod
    def create(self, data: OrderCreate) -> Order:
        ...


class InventoryLedger(ABC):
    """
    Conditional stock changes.

    reserve() is all-or-nothing: every product's stock drops by its
    requested quantity only if the current stock covers it, otherwise
    InsufficientStock is raised and no stock changes.
    """

    @abstractmethod
    def reserve(self, items: Sequence[StockRequest]) -> None:
        ...

    @abstractmethod
    def restock(self, product_id: int, amount: int) -> Product:
        ...


def aggregate_demand(items: Sequence[StockRequest]) -> List[StockRequest]:
    """
    Sum quantities per product, keeping first-seen order

    Duplicate product IDs in one request stay separate order lines, but
    the stock condition is evaluated on their combined quantity.
    """
    totals = {}
    for product_id, quantity in items:
        totals[product_id] = totals.get(product_id, 0) + quantity
    return list(totals.items())


class UnitOfWork(ABC):
    """
    Transaction boundary

    Usage:
        with uow_factory() as uow:
            customer = uow.customers.find_by_id(1)
            ...
            uow.commit()

    Leaving the block without commit() (or with an exception) rolls back.
    """

    customers: CustomerRepository
    products: ProductRepository
    orders: OrderRepository
    ledger: InventoryLedger

    def __init__(self):
        self._committed = False

    def __enter__(self) -> "UnitOfWork":
        self._committed = False
        try:
            self.begin()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None or not self._committed:
                self.rollback()
        finally:
            self.close()

    def commit(self) -> None:
        self._commit()
        self._committed = True

    @abstractmethod
    def begin(self) -> None:
        ...

    @abstractmethod
    def _commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    def close(self) -> None:
        pass


UnitOfWorkFactory = Callable[[], UnitOfWork]


def build_unit_of_work_factory(
    backend: str,
    transaction_timeout_ms: Optional[int] = None,
    lock_timeout_s: Optional[float] = None,
    seed_demo_data: bool = False,
) -> UnitOfWorkFactory:
    """
    Build the unit-of-work factory for a storage backend

    Args:
        backend: "postgres" or "memory"
        transaction_timeout_ms: PostgreSQL statement_timeout per unit of work
        lock_timeout_s: In-memory store lock timeout
        seed_demo_data: Load demo customers/products (memory backend)

    Returns:
        Zero-argument callable returning a fresh UnitOfWork
    """
    if backend == "postgres":
        from app.repositories.postgres import PostgresUnitOfWork

        def factory() -> UnitOfWork:
            return PostgresUnitOfWork(transaction_timeout_ms=transaction_timeout_ms)

        logger.info("Using PostgreSQL store")
        return factory

    if backend == "memory":
        from app.repositories.memory_store import InMemoryStore

        store = InMemoryStore(lock_timeout=lock_timeout_s)
        if seed_demo_data:
            from app.core.seed import seed_demo_data as load_seed

            load_seed(store.unit_of_work)
        logger.info("Using in-memory store")
        return store.unit_of_work

    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
