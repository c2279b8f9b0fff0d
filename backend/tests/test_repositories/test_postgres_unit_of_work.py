"""
Unit tests for PostgresUnitOfWork and the order/customer repositories

psycopg2 connections and cursors are mocked; no database is required.
"""
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timezone
from decimal import Decimal

import psycopg2
from psycopg2 import errors

from app.core.exceptions import DuplicateCustomer, InsufficientStock, TransientStoreFailure
from app.domain.order import (
    AppliedDiscount,
    CustomerCreate,
    OrderCreate,
    OrderLineItem,
    PricingBreakdown,
)
from app.domain.pricing import DiscountType
from app.repositories.customer_repository import PostgresCustomerRepository
from app.repositories.order_repository import PostgresOrderRepository
from app.repositories.postgres import PostgresUnitOfWork


def mock_connection():
    conn = MagicMock()
    conn.closed = 0
    cursor = MagicMock()
    conn.cursor.return_value = cursor
    return conn, cursor


def make_uow(conn, timeout=None):
    return PostgresUnitOfWork(connection_factory=lambda: conn, transaction_timeout_ms=timeout)


class TestPostgresUnitOfWork:

    def test_commit(self):
        conn, cursor = mock_connection()

        with make_uow(conn, timeout=5000) as uow:
            uow.commit()

        cursor.execute.assert_called_once_with("SET LOCAL statement_timeout = %s", (5000,))
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        cursor.close.assert_called_once()
        conn.close.assert_called_once()

    def test_no_commit_rolls_back(self):
        conn, cursor = mock_connection()

        with make_uow(conn):
            pass

        conn.commit.assert_not_called()
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    def test_domain_error_rolls_back_and_propagates(self):
        conn, cursor = mock_connection()

        with pytest.raises(InsufficientStock):
            with make_uow(conn):
                raise InsufficientStock(1, requested=2)

        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    @pytest.mark.parametrize("error", [
        errors.SerializationFailure("could not serialize access"),
        errors.DeadlockDetected("deadlock detected"),
        errors.QueryCanceled("canceling statement due to statement timeout"),
        psycopg2.OperationalError("server closed the connection unexpectedly"),
    ])
    def test_database_aborts_become_transient(self, error):
        conn, cursor = mock_connection()

        with pytest.raises(TransientStoreFailure) as exc_info:
            with make_uow(conn) as uow:
                cursor.execute.side_effect = error
                uow.ledger.reserve([(1, 1)])

        assert exc_info.value.retryable
        assert exc_info.value.__cause__ is error
        conn.rollback.assert_called_once()

    def test_commit_failure_is_transient(self):
        conn, cursor = mock_connection()
        conn.commit.side_effect = errors.SerializationFailure("could not serialize access")

        with pytest.raises(TransientStoreFailure):
            with make_uow(conn) as uow:
                uow.commit()

        conn.rollback.assert_called_once()

    def test_connection_failure_is_transient(self):
        def refuse():
            raise psycopg2.OperationalError("connection refused")

        with pytest.raises(TransientStoreFailure):
            with PostgresUnitOfWork(connection_factory=refuse):
                pass

    def test_statement_timeout_failure_is_transient(self):
        conn, cursor = mock_connection()
        error = psycopg2.OperationalError("server closed the connection unexpectedly")
        cursor.execute.side_effect = error

        with pytest.raises(TransientStoreFailure) as exc_info:
            with make_uow(conn, timeout=5000):
                pass

        assert exc_info.value.__cause__ is error
        cursor.close.assert_called_once()
        conn.close.assert_called_once()

    def test_rollback_skipped_on_closed_connection(self):
        conn, cursor = mock_connection()
        conn.closed = 2

        with make_uow(conn):
            pass

        conn.rollback.assert_not_called()


class TestPostgresCustomerRepository:

    def test_find_by_email_normalizes(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = {
            'id': 1, 'email': 'jan@example.com', 'name': 'Jan', 'location_code': 'EU', 'created_at': None,
        }

        customer = PostgresCustomerRepository(cursor).find_by_email(' Jan@Example.com ')

        assert customer.location_code == 'EU'
        assert cursor.execute.call_args.args[1] == ('jan@example.com',)

    def test_unique_violation_becomes_duplicate_customer(self):
        cursor = MagicMock()
        cursor.execute.side_effect = errors.UniqueViolation("duplicate key value")

        with pytest.raises(DuplicateCustomer) as exc_info:
            PostgresCustomerRepository(cursor).create(
                CustomerCreate(email='Jan@Example.com', name='Jan', location_code='EU')
            )

        assert exc_info.value.email == 'jan@example.com'


class TestPostgresOrderRepository:

    def make_order_create(self):
        return OrderCreate(
            customer_id=2,
            items=[
                OrderLineItem(product_id=1, quantity=10, unit_base_price=Decimal('57.50'),
                              unit_final_price=Decimal('46.00')),
                OrderLineItem(product_id=1, quantity=1, unit_base_price=Decimal('57.50'),
                              unit_final_price=Decimal('46.00')),
            ],
            pricing=PricingBreakdown(
                base_price=Decimal('632.50'),
                location_tariff_rate=Decimal('1.15'),
                applied_discount=AppliedDiscount(type=DiscountType.VOLUME, rate=Decimal('0.20')),
                discount_amount=Decimal('126.50'),
                final_price=Decimal('506.00'),
            ),
            created_at=datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc),
        )

    def test_create_inserts_order_and_numbered_lines(self):
        cursor = MagicMock()
        created_at = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        cursor.fetchone.return_value = {'id': 77, 'created_at': created_at}

        order = PostgresOrderRepository(cursor).create(self.make_order_create())

        assert order.id == 77
        assert len(order.items) == 2
        order_params = cursor.execute.call_args.args[1]
        assert order_params[3] == 'volume'

        rows = cursor.executemany.call_args.args[1]
        assert [(row[0], row[1]) for row in rows] == [(77, 1), (77, 2)]

    def test_find_by_id_maps_breakdown(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = {
            'id': 5,
            'customer_id': 1,
            'base_price': Decimal('100.00'),
            'location_tariff_rate': Decimal('1.0000'),
            'discount_type': None,
            'discount_rate': None,
            'discount_amount': Decimal('0.00'),
            'final_price': Decimal('100.00'),
            'created_at': datetime(2025, 3, 10, tzinfo=timezone.utc),
        }
        cursor.fetchall.return_value = [{
            'product_id': 1, 'quantity': 1,
            'unit_base_price': Decimal('100.00'), 'unit_final_price': Decimal('100.00'),
        }]

        order = PostgresOrderRepository(cursor).find_by_id(5)

        assert order.pricing.applied_discount is None
        assert order.items[0].product_id == 1
        assert order.to_dict()['pricing']['final_price'] == 100.0
