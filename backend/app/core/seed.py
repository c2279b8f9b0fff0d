"""
Demo seed data

Loads a few customers and products so a fresh store can take orders
right away. Safe to run repeatedly: customers are matched by email and
products are only added to an empty catalog.
"""
import logging
from decimal import Decimal

from app.domain.order import CustomerCreate
from app.domain.product import ProductCategory, ProductCreate
from app.repositories.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

DEMO_CUSTOMERS = [
    CustomerCreate(email="jan.kowalski@example.com", name="Jan Kowalski", location_code="EU"),
    # "AS" has no tariff rule, so this customer is priced at the neutral multiplier
    CustomerCreate(email="adam.nowak@example.com", name="Adam Nowak", location_code="AS"),
    CustomerCreate(email="anna.wisniewska@example.com", name="Anna Wisniewska", location_code="US"),
]

DEMO_PRODUCTS = [
    ProductCreate(name="Wireless Headphones", description="Over-ear, noise cancelling",
                  price=Decimal("100.00"), stock=25, category=ProductCategory.ELECTRONICS),
    ProductCreate(name="Winter Jacket", description="Waterproof, size M",
                  price=Decimal("80.00"), stock=15, category=ProductCategory.CLOTHING),
    ProductCreate(name="Cookbook", description="Hardcover, 300 recipes",
                  price=Decimal("25.50"), stock=40, category=ProductCategory.BOOKS),
    ProductCreate(name="Desk Lamp", description="LED, adjustable arm",
                  price=Decimal("34.99"), stock=10, category=ProductCategory.HOME),
]


def seed_demo_data(unit_of_work_factory: UnitOfWorkFactory) -> None:
    """Insert demo customers and products if they are missing"""
    with unit_of_work_factory() as uow:
        created_customers = 0
        for customer in DEMO_CUSTOMERS:
            if uow.customers.find_by_email(customer.email) is None:
                uow.customers.create(customer)
                created_customers += 1

        created_products = 0
        _, total = uow.products.find_all(limit=1)
        if total == 0:
            for product in DEMO_PRODUCTS:
                uow.products.create(product)
                created_products += 1

        uow.commit()

    logger.info(f"Seeded {created_customers} customer(s) and {created_products} product(s)")
