"""
Product Repository - Data Access Layer for Products

Handles all database queries for products and returns Product domain models.
Runs on the cursor of the enclosing PostgresUnitOfWork.

Author: TM3
Date: 2025-10-17
Updated: 2026-10-12 (unit-of-work cursor, batch lookup)
"""
from typing import Iterable, List, Optional, Tuple

from app.domain.product import Product, ProductCreate
from app.repositories.unit_of_work import ProductRepository

PRODUCT_COLUMNS = """
    id, name, description, price, stock, category, created_at, updated_at
"""


class PostgresProductRepository(ProductRepository):
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    def __init__(self, cursor):
        self.cursor = cursor

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        """Map a database row to the Product domain model"""
        return Product(
            id=row['id'],
            name=row['name'],
            description=row['description'],
            price=row['price'],
            stock=row['stock'],
            category=row['category'],
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, product_id: int) -> Optional[Product]:
        """
        Find product by ID

        Args:
            product_id: Internal product ID

        Returns:
            Product or None if not found
        """
        self.cursor.execute(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE id = %s
        """, (product_id,))

        row = self.cursor.fetchone()
        if not row:
            return None

        return self._map_row_to_product(row)

    def find_by_ids(self, product_ids: Iterable[int]) -> List[Product]:
        """
        Find several products in one query

        Args:
            product_ids: Product IDs (duplicates are fine)

        Returns:
            Products found, ordered by ID; missing IDs are absent
        """
        ids = sorted(set(product_ids))
        if not ids:
            return []

        self.cursor.execute(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE id = ANY(%s)
            ORDER BY id
        """, (ids,))

        return [self._map_row_to_product(row) for row in self.cursor.fetchall()]

    def find_all(self, limit: int = 100, offset: int = 0) -> Tuple[List[Product], int]:
        """
        List products

        Args:
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        self.cursor.execute("SELECT COUNT(*) as total FROM products")
        total = self.cursor.fetchone()['total']

        self.cursor.execute(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            ORDER BY id
            LIMIT %s OFFSET %s
        """, (limit, offset))

        products = [self._map_row_to_product(row) for row in self.cursor.fetchall()]
        return products, total

    def create(self, data: ProductCreate) -> Product:
        """Insert a new product and return it"""
        self.cursor.execute(f"""
            INSERT INTO products (name, description, price, stock, category)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {PRODUCT_COLUMNS}
        """, (
            data.name,
            data.description,
            data.price,
            data.stock,
            data.category.value,
        ))

        return self._map_row_to_product(self.cursor.fetchone())
