"""
PostgreSQL Unit of Work

One psycopg2 connection and transaction per unit of work. The
repositories and the inventory ledger share its cursor, so the customer
read, product reads, stock decrement and order insert commit or roll
back together.

Author: TM3
Date: 2026-10-12
"""
import logging
from typing import Callable, Optional

import psycopg2
from psycopg2 import errors

from app.core.database import get_db_connection_dict_with_retry
from app.core.exceptions import TransientStoreFailure
from app.repositories.customer_repository import PostgresCustomerRepository
from app.repositories.inventory_ledger import PostgresInventoryLedger
from app.repositories.order_repository import PostgresOrderRepository
from app.repositories.product_repository import PostgresProductRepository
from app.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

# Errors after which the whole unit of work can safely be retried
TRANSIENT_ERRORS = (
    errors.SerializationFailure,
    errors.DeadlockDetected,
    errors.QueryCanceled,
    errors.LockNotAvailable,
    psycopg2.OperationalError,
    psycopg2.InterfaceError,
)


class PostgresUnitOfWork(UnitOfWork):
    """
    psycopg2 transaction as a unit of work

    Database errors that abort the transaction (serialization failures,
    deadlocks, statement timeouts, lost connections) are re-raised as
    TransientStoreFailure after rollback.
    """

    def __init__(
        self,
        connection_factory: Callable = get_db_connection_dict_with_retry,
        transaction_timeout_ms: Optional[int] = None,
    ):
        super().__init__()
        self._connection_factory = connection_factory
        self._transaction_timeout_ms = transaction_timeout_ms
        self._conn = None
        self._cursor = None

    def begin(self) -> None:
        try:
            self._conn = self._connection_factory()
        except TRANSIENT_ERRORS as e:
            raise TransientStoreFailure(f"Could not open a database connection: {e}") from e

        self._cursor = self._conn.cursor()
        if self._transaction_timeout_ms:
            try:
                self._cursor.execute("SET LOCAL statement_timeout = %s", (self._transaction_timeout_ms,))
            except TRANSIENT_ERRORS as e:
                raise TransientStoreFailure(f"Could not set the statement timeout: {e}") from e

        self.customers = PostgresCustomerRepository(self._cursor)
        self.products = PostgresProductRepository(self._cursor)
        self.orders = PostgresOrderRepository(self._cursor)
        self.ledger = PostgresInventoryLedger(self._cursor)

    def __exit__(self, exc_type, exc, tb) -> None:
        super().__exit__(exc_type, exc, tb)
        if exc_type is not None and issubclass(exc_type, TRANSIENT_ERRORS):
            logger.warning(f"Unit of work aborted by the database: {exc}")
            raise TransientStoreFailure(str(exc).strip() or exc_type.__name__) from exc

    def _commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        if self._conn is None or self._conn.closed:
            return
        try:
            self._conn.rollback()
        except psycopg2.Error as e:
            # connection already broken; the server discards the transaction
            logger.warning(f"Rollback failed: {e}")

    def close(self) -> None:
        if self._cursor is not None:
            try:
                self._cursor.close()
            except psycopg2.Error as e:
                logger.warning(f"Cursor close failed: {e}")
            self._cursor = None
        if self._conn is not None:
            self._conn.close()
            self._conn = None
