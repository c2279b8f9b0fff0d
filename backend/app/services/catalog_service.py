"""
Catalog Service
Product and customer operations outside the order commit: creating
products and customers, listing products, restocking and selling single
products.

Selling goes through the same conditional ledger reservation as an order
commit, so it can never drive stock below zero.
"""
from typing import List, Tuple

from app.core.exceptions import CustomerNotFound, ProductNotFound
from app.domain.order import Customer, CustomerCreate
from app.domain.product import Product, ProductCreate
from app.repositories.unit_of_work import UnitOfWorkFactory


class CatalogService:
    """Service for catalog business logic"""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory):
        self.unit_of_work_factory = unit_of_work_factory

    def create_product(self, data: ProductCreate) -> Product:
        with self.unit_of_work_factory() as uow:
            product = uow.products.create(data)
            uow.commit()
        return product

    def list_products(self, limit: int = 10, offset: int = 0) -> Tuple[List[Product], int]:
        """Get products page and total count"""
        with self.unit_of_work_factory() as uow:
            return uow.products.find_all(limit=limit, offset=offset)

    def get_product(self, product_id: int) -> Product:
        with self.unit_of_work_factory() as uow:
            product = uow.products.find_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def restock_product(self, product_id: int, amount: int) -> Product:
        """
        Increase product stock

        Raises:
            ProductNotFound: if the product does not exist
        """
        with self.unit_of_work_factory() as uow:
            product = uow.ledger.restock(product_id, amount)
            uow.commit()
        return product

    def sell_product(self, product_id: int, amount: int) -> Product:
        """
        Decrease product stock only if enough units are available

        Raises:
            ProductNotFound: if the product does not exist
            InsufficientStock: if stock is lower than amount
        """
        with self.unit_of_work_factory() as uow:
            if uow.products.find_by_id(product_id) is None:
                raise ProductNotFound(product_id)
            uow.ledger.reserve([(product_id, amount)])
            product = uow.products.find_by_id(product_id)
            uow.commit()
        return product

    def create_customer(self, data: CustomerCreate) -> Customer:
        """
        Create a customer

        Raises:
            DuplicateCustomer: if the email is already registered
        """
        with self.unit_of_work_factory() as uow:
            customer = uow.customers.create(data)
            uow.commit()
        return customer

    def get_customer(self, customer_id: int) -> Customer:
        with self.unit_of_work_factory() as uow:
            customer = uow.customers.find_by_id(customer_id)
        if customer is None:
            raise CustomerNotFound(customer_id)
        return customer
