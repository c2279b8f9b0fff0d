"""
Domain Layer - Business Entities

This layer contains Pydantic models and value objects representing
business entities. These models enforce type safety and validation
across the application.

Author: TM3
Date: 2025-10-17
"""
from app.domain.money import Money
from app.domain.product import Product, ProductCategory
from app.domain.order import Order, OrderLineItem, PricingBreakdown, AppliedDiscount, Customer
from app.domain.pricing import PricingRuleSet, DiscountType, LocationCode

__all__ = [
    'Money',
    'Product',
    'ProductCategory',
    'Order',
    'OrderLineItem',
    'PricingBreakdown',
    'AppliedDiscount',
    'Customer',
    'PricingRuleSet',
    'DiscountType',
    'LocationCode',
]
