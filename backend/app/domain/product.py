"""
Product Domain Model

Represents a sellable product: its unit price, available stock and
category. Stock is only changed through the inventory ledger.

Author: TM3
Date: 2025-10-17
Updated: 2026-10-12 (pricing categories, ledger-owned stock)
"""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from app.domain.money import round_amount


class ProductCategory(str, Enum):
    """Product categories used by category-scoped discounts"""
    ELECTRONICS = "ELECTRONICS"
    BOOKS = "BOOKS"
    CLOTHING = "CLOTHING"
    HOME = "HOME"
    TOYS = "TOYS"


class Product(BaseModel):
    """
    Product domain model - represents a product in our catalog

    Fields:
        id: Internal product ID (primary key)
        name: Product name
        description: Product description
        price: Unit price before location tariff and discounts
        stock: Units available for sale (never negative)
        category: Product category
        created_at: When product was created
        updated_at: When product was last updated
    """

    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Decimal = Field(..., description="Unit price", ge=0)
    stock: int = Field(0, description="Units in stock", ge=0)
    category: ProductCategory = Field(..., description="Product category")

    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @field_validator("price")
    @classmethod
    def _two_decimal_places(cls, value: Decimal) -> Decimal:
        return round_amount(value)

    @property
    def is_out_of_stock(self) -> bool:
        """Check if product is out of stock"""
        return self.stock <= 0

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump(mode="json")
        data['price'] = float(self.price)
        data['is_out_of_stock'] = self.is_out_of_stock
        return data


class ProductCreate(BaseModel):
    """Schema for creating a new product"""
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    category: ProductCategory


class StockChange(BaseModel):
    """Schema for restocking or selling a product"""
    amount: int = Field(..., ge=1, description="Units to add or remove")
