"""
Pytest fixtures and configuration for Order Engine backend tests

This file provides shared fixtures that can be used across all test modules.
Everything runs on the in-memory store; no database is required.

Author: TM3
Date: 2025-10-17
"""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.domain.order import Customer
from app.domain.product import Product, ProductCategory
from app.repositories.memory_store import InMemoryStore
from app.services.catalog_service import CatalogService
from app.services.order_commit_service import OrderCommitService
from app.services.pricing_service import PricingService

# A date with no date-based discount in the default rules
ORDINARY_DAY = date(2025, 3, 10)
BLACK_FRIDAY = date(2025, 11, 29)
CHRISTMAS = date(2025, 12, 25)


def make_product(product_id, price, stock=100, category=ProductCategory.BOOKS, name=None):
    return Product(
        id=product_id,
        name=name or f"Product {product_id}",
        description="Test product",
        price=Decimal(price),
        stock=stock,
        category=category,
    )


def make_customer(customer_id, location_code, email=None):
    return Customer(
        id=customer_id,
        email=email or f"customer{customer_id}@example.com",
        name=f"Customer {customer_id}",
        location_code=location_code,
    )


def fixed_clock(day=ORDINARY_DAY):
    moment = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def customers():
    """US (neutral), EU (surcharge) and ASIA (discount) customers"""
    return [
        make_customer(1, "US"),
        make_customer(2, "EU"),
        make_customer(3, "ASIA"),
    ]


@pytest.fixture
def products():
    return [
        make_product(1, "50.00", stock=100, category=ProductCategory.BOOKS, name="Notebook"),
        make_product(2, "100.00", stock=10, category=ProductCategory.ELECTRONICS, name="Headphones"),
        make_product(3, "20.00", stock=5, category=ProductCategory.CLOTHING, name="T-Shirt"),
        make_product(4, "10.00", stock=1, category=ProductCategory.HOME, name="Mug"),
    ]


@pytest.fixture
def store(customers, products):
    """Fresh in-memory store per test"""
    return InMemoryStore(customers=customers, products=products, lock_timeout=2.0)


@pytest.fixture
def pricing_service():
    return PricingService()


@pytest.fixture
def order_service(store, pricing_service):
    return OrderCommitService(store.unit_of_work, pricing_service, clock=fixed_clock())


@pytest.fixture
def catalog_service(store):
    return CatalogService(store.unit_of_work)


@pytest.fixture
def client(store):
    """
    FastAPI TestClient wired to the in-memory store

    Overrides the unit-of-work factory dependency; cleared after the test.
    """
    from fastapi.testclient import TestClient

    from app.api.dependencies import get_unit_of_work_factory
    from app.main import app

    app.dependency_overrides[get_unit_of_work_factory] = lambda: store.unit_of_work
    yield TestClient(app)
    app.dependency_overrides.clear()
