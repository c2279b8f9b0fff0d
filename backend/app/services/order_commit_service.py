"""
Order Commit Service
Commits a multi-item order as one unit of work

Steps (all inside a single unit of work):
1. Load customer
2. Load all requested products in one batch
3. Pre-check stock per requested item
4. Price the order (PricingService)
5. Atomically reserve stock (InventoryLedger)
6. Persist the order
7. Commit

Any failure rolls the unit of work back: no partial order and no partial
stock decrement is ever visible. TransientStoreFailure means the store
aborted the transaction and the whole commit may be retried.

Author: TM3
Date: 2026-10-12
"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Sequence, Tuple, Union

from app.core.exceptions import (
    CustomerNotFound,
    EmptyOrder,
    InsufficientStock,
    InvalidOrderItem,
    OrderNotFound,
    ProductNotFound,
)
from app.domain.order import Order, OrderCreate, OrderItemRequest
from app.domain.product import Product
from app.repositories.unit_of_work import UnitOfWorkFactory
from app.services.pricing_service import PricingItem, PricingService

RequestedItem = Union[OrderItemRequest, Tuple[int, int]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderCommitService:
    """
    Orchestrates customer lookup, product lookup, pricing, stock
    reservation and order persistence
    """

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        pricing_service: PricingService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.unit_of_work_factory = unit_of_work_factory
        self.pricing_service = pricing_service
        self.clock = clock

    @staticmethod
    def _normalize(items: Sequence[RequestedItem]) -> List[Tuple[int, int]]:
        requested = []
        for item in items:
            if isinstance(item, OrderItemRequest):
                product_id, quantity = item.product_id, item.quantity
            else:
                product_id, quantity = item
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise InvalidOrderItem(product_id, quantity)
            requested.append((product_id, quantity))
        return requested

    def commit_order(self, customer_id: int, items: Sequence[RequestedItem]) -> Order:
        """
        Commit an order

        Args:
            customer_id: Customer placing the order
            items: Requested (product_id, quantity) pairs, in order;
                duplicate product IDs become separate lines

        Returns:
            The persisted Order

        Raises:
            EmptyOrder, InvalidOrderItem: request is malformed
            CustomerNotFound: no customer with that ID
            ProductNotFound: first requested product that does not exist
            InsufficientStock: a product cannot cover its quantity
            TransientStoreFailure: store aborted the unit of work (retryable)
        """
        requested = self._normalize(items)
        if not requested:
            raise EmptyOrder()

        now = self.clock()

        with self.unit_of_work_factory() as uow:
            # 1. Customer
            customer = uow.customers.find_by_id(customer_id)
            if customer is None:
                raise CustomerNotFound(customer_id)

            # 2. Products, one batch
            products: Dict[int, Product] = {
                product.id: product
                for product in uow.products.find_by_ids(product_id for product_id, _ in requested)
            }
            for product_id, _ in requested:
                if product_id not in products:
                    raise ProductNotFound(product_id)

            # 3. Stock pre-check (the ledger re-checks atomically)
            for product_id, quantity in requested:
                product = products[product_id]
                if product.stock < quantity:
                    raise InsufficientStock(product_id, requested=quantity, available=product.stock)

            # 4. Pricing
            priced = self.pricing_service.price(
                customer.location_code,
                [PricingItem(products[product_id], quantity) for product_id, quantity in requested],
                evaluation_date=now.date(),
            )

            # 5. Atomic stock reservation
            uow.ledger.reserve([(item.product_id, item.quantity) for item in priced.items])

            # 6. Order
            order = uow.orders.create(OrderCreate(
                customer_id=customer.id,
                items=priced.items,
                pricing=priced.pricing,
                created_at=now,
            ))

            # 7. Commit
            uow.commit()

        return order

    def get_order(self, order_id: int) -> Order:
        """
        Find a committed order

        Raises:
            OrderNotFound: no order with that ID
        """
        with self.unit_of_work_factory() as uow:
            order = uow.orders.find_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order
