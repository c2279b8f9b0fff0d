"""
Customer Repository - Data Access Layer for Customers
"""
from typing import Optional

from psycopg2 import errors

from app.core.exceptions import DuplicateCustomer
from app.domain.order import Customer, CustomerCreate
from app.repositories.unit_of_work import CustomerRepository


class PostgresCustomerRepository(CustomerRepository):
    """Customer lookups and inserts on the unit-of-work cursor"""

    def __init__(self, cursor):
        self.cursor = cursor

    @staticmethod
    def _map_row_to_customer(row: dict) -> Customer:
        return Customer(
            id=row['id'],
            email=row['email'],
            name=row['name'],
            location_code=row['location_code'],
            created_at=row.get('created_at'),
        )

    def find_by_id(self, customer_id: int) -> Optional[Customer]:
        self.cursor.execute("""
            SELECT id, email, name, location_code, created_at
            FROM customers
            WHERE id = %s
        """, (customer_id,))

        row = self.cursor.fetchone()
        return self._map_row_to_customer(row) if row else None

    def find_by_email(self, email: str) -> Optional[Customer]:
        self.cursor.execute("""
            SELECT id, email, name, location_code, created_at
            FROM customers
            WHERE email = %s
        """, (email.strip().lower(),))

        row = self.cursor.fetchone()
        return self._map_row_to_customer(row) if row else None

    def create(self, data: CustomerCreate) -> Customer:
        email = data.email.strip().lower()
        try:
            self.cursor.execute("""
                INSERT INTO customers (email, name, location_code)
                VALUES (%s, %s, %s)
                RETURNING id, email, name, location_code, created_at
            """, (
                email,
                data.name.strip(),
                data.location_code.strip(),
            ))
        except errors.UniqueViolation as e:
            raise DuplicateCustomer(email) from e

        return self._map_row_to_customer(self.cursor.fetchone())
