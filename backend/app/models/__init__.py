"""
Database models (schema)
"""
from .order import Order, OrderItem
from .customer import Customer
from .product import Product

__all__ = [
    "Order",
    "OrderItem",
    "Customer",
    "Product",
]
