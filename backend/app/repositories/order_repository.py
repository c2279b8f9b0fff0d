"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.
Orders are insert-only: there is no update or delete.

Author: TM3
Date: 2025-10-17
Updated: 2026-10-12 (pricing breakdown columns, unit-of-work cursor)
"""
from typing import List, Optional

from app.domain.order import (
    AppliedDiscount,
    Order,
    OrderCreate,
    OrderLineItem,
    PricingBreakdown,
)
from app.repositories.unit_of_work import OrderRepository


class PostgresOrderRepository(OrderRepository):
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    """

    def __init__(self, cursor):
        self.cursor = cursor

    @staticmethod
    def _map_row_to_pricing(row: dict) -> PricingBreakdown:
        applied_discount = None
        if row.get('discount_type'):
            applied_discount = AppliedDiscount(type=row['discount_type'], rate=row['discount_rate'])

        return PricingBreakdown(
            base_price=row['base_price'],
            location_tariff_rate=row['location_tariff_rate'],
            applied_discount=applied_discount,
            discount_amount=row['discount_amount'],
            final_price=row['final_price'],
        )

    def _find_items(self, order_id: int) -> List[OrderLineItem]:
        self.cursor.execute("""
            SELECT product_id, quantity, unit_base_price, unit_final_price
            FROM order_items
            WHERE order_id = %s
            ORDER BY line_number
        """, (order_id,))

        return [
            OrderLineItem(
                product_id=row['product_id'],
                quantity=row['quantity'],
                unit_base_price=row['unit_base_price'],
                unit_final_price=row['unit_final_price'],
            )
            for row in self.cursor.fetchall()
        ]

    def find_by_id(self, order_id: int) -> Optional[Order]:
        """
        Find order by ID with its priced lines

        Args:
            order_id: Internal order ID

        Returns:
            Order or None if not found
        """
        self.cursor.execute("""
            SELECT
                id, customer_id,
                base_price, location_tariff_rate,
                discount_type, discount_rate, discount_amount, final_price,
                created_at
            FROM orders
            WHERE id = %s
        """, (order_id,))

        row = self.cursor.fetchone()
        if not row:
            return None

        return Order(
            id=row['id'],
            customer_id=row['customer_id'],
            items=self._find_items(row['id']),
            pricing=self._map_row_to_pricing(row),
            created_at=row['created_at'],
        )

    def create(self, data: OrderCreate) -> Order:
        """
        Insert the order row and its lines

        Runs inside the caller's transaction: nothing is visible to other
        sessions until the unit of work commits.
        """
        pricing = data.pricing
        discount = pricing.applied_discount

        self.cursor.execute("""
            INSERT INTO orders (
                customer_id,
                base_price, location_tariff_rate,
                discount_type, discount_rate, discount_amount, final_price,
                created_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s
            )
            RETURNING id, created_at
        """, (
            data.customer_id,
            pricing.base_price,
            pricing.location_tariff_rate,
            discount.type.value if discount else None,
            discount.rate if discount else None,
            pricing.discount_amount,
            pricing.final_price,
            data.created_at,
        ))

        order_row = self.cursor.fetchone()
        order_id = order_row['id']

        self.cursor.executemany("""
            INSERT INTO order_items (
                order_id, line_number, product_id,
                quantity, unit_base_price, unit_final_price
            ) VALUES (
                %s, %s, %s, %s, %s, %s
            )
        """, [
            (
                order_id,
                line_number,
                item.product_id,
                item.quantity,
                item.unit_base_price,
                item.unit_final_price,
            )
            for line_number, item in enumerate(data.items, start=1)
        ])

        return Order(
            id=order_id,
            customer_id=data.customer_id,
            items=list(data.items),
            pricing=pricing,
            created_at=order_row['created_at'],
        )
