"""
Inventory Ledger - conditional stock changes on PostgreSQL

reserve() decrements every requested product in ONE statement:

    UPDATE products ... FROM (VALUES ...) WHERE stock >= quantity RETURNING id

Concurrent writers on the same rows wait on the row lock and then
re-check the WHERE condition against the committed stock, so two
transactions can never both take the last unit. A savepoint makes the
statement all-or-nothing even when one row fails the condition.

Author: TM3
Date: 2026-10-12
"""
import logging
from typing import Sequence

from app.core.exceptions import InsufficientStock, ProductNotFound
from app.domain.product import Product
from app.repositories.product_repository import PRODUCT_COLUMNS, PostgresProductRepository
from app.repositories.unit_of_work import InventoryLedger, StockRequest, aggregate_demand

logger = logging.getLogger(__name__)


class PostgresInventoryLedger(InventoryLedger):
    """Stock reservations on the unit-of-work cursor"""

    def __init__(self, cursor):
        self.cursor = cursor

    def reserve(self, items: Sequence[StockRequest]) -> None:
        """
        Atomically decrement stock for all items, or for none

        Args:
            items: (product_id, quantity) pairs; duplicates are summed

        Raises:
            InsufficientStock: naming the first product whose stock does
                not cover its quantity (or that does not exist)
        """
        demand = aggregate_demand(items)
        if not demand:
            return

        values_sql = ", ".join(["(%s, %s)"] * len(demand))
        params = [value for product_id, quantity in demand for value in (product_id, quantity)]

        self.cursor.execute("SAVEPOINT reserve_stock")
        self.cursor.execute(f"""
            UPDATE products AS p
            SET stock = p.stock - r.quantity,
                updated_at = NOW()
            FROM (VALUES {values_sql}) AS r(id, quantity)
            WHERE p.id = r.id
              AND p.stock >= r.quantity
            RETURNING p.id
        """, params)

        updated = {row['id'] for row in self.cursor.fetchall()}
        missing = [(product_id, quantity) for product_id, quantity in demand if product_id not in updated]

        if missing:
            self.cursor.execute("ROLLBACK TO SAVEPOINT reserve_stock")
            product_id, quantity = missing[0]
            logger.info(f"Stock reservation rejected for product {product_id} (requested {quantity})")
            raise InsufficientStock(product_id, requested=quantity)

        self.cursor.execute("RELEASE SAVEPOINT reserve_stock")

    def restock(self, product_id: int, amount: int) -> Product:
        """
        Increase stock of one product

        Raises:
            ProductNotFound: if the product does not exist
        """
        self.cursor.execute(f"""
            UPDATE products
            SET stock = stock + %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {PRODUCT_COLUMNS}
        """, (amount, product_id))

        row = self.cursor.fetchone()
        if not row:
            raise ProductNotFound(product_id)

        return PostgresProductRepository._map_row_to_product(row)
