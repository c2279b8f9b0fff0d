"""
Order Domain Models

Represents customers, priced order lines, pricing breakdowns and
committed orders. An Order owns its line items and its breakdown;
products and customers are referenced by ID only.

Author: TM3
Date: 2025-10-17
Updated: 2026-10-12 (pricing breakdown, per-unit base/final prices)
"""
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.domain.pricing import DiscountType


class Customer(BaseModel):
    """
    Customer domain model (pricing context)

    location_code drives the location tariff. Codes without a tariff
    rule are priced at the neutral multiplier.
    """

    id: int = Field(..., description="Customer ID")
    email: str = Field(..., description="Customer email")
    name: str = Field(..., description="Customer name")
    location_code: str = Field(..., description="Customer location code (US, EU, ASIA)")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    model_config = ConfigDict(from_attributes=True, frozen=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class CustomerCreate(BaseModel):
    """Schema for creating a new customer"""
    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=100)
    location_code: str = Field(..., min_length=1, max_length=20)


class OrderItemRequest(BaseModel):
    """One requested product and quantity"""
    product_id: int = Field(..., description="Product ID")
    quantity: int = Field(..., ge=1, description="Units requested")


class OrderRequest(BaseModel):
    """Schema for committing a new order"""
    customer_id: int = Field(..., description="Customer placing the order")
    products: List[OrderItemRequest] = Field(..., min_length=1)


class OrderLineItem(BaseModel):
    """
    Priced order line

    Fields:
        product_id: Reference to product catalog
        quantity: Number of units ordered
        unit_base_price: Unit price after location tariff, before discount
        unit_final_price: Unit price after discount
    """

    product_id: int = Field(..., description="Product ID")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_base_price: Decimal = Field(..., description="Unit price before discount", ge=0)
    unit_final_price: Decimal = Field(..., description="Unit price after discount", ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _final_not_above_base(self) -> "OrderLineItem":
        if self.unit_final_price > self.unit_base_price:
            raise ValueError("unit_final_price cannot exceed unit_base_price")
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        return {
            'product_id': self.product_id,
            'quantity': self.quantity,
            'base_unit_price': float(self.unit_base_price),
            'final_unit_price': float(self.unit_final_price),
        }


class AppliedDiscount(BaseModel):
    """The single discount applied to an order"""
    type: DiscountType
    rate: Decimal

    model_config = ConfigDict(frozen=True)


class PricingBreakdown(BaseModel):
    """
    Order-level pricing

    Fields:
        base_price: Sum of line totals before discount
        location_tariff_rate: Multiplier applied for the customer location
        applied_discount: At most one discount (type + rate)
        discount_amount: Amount taken off the base price
        final_price: base_price - discount_amount
    """

    base_price: Decimal = Field(..., ge=0)
    location_tariff_rate: Decimal = Field(..., gt=0)
    applied_discount: Optional[AppliedDiscount] = None
    discount_amount: Decimal = Field(Decimal("0.00"), ge=0)
    final_price: Decimal = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _consistent_totals(self) -> "PricingBreakdown":
        if self.final_price > self.base_price:
            raise ValueError("final_price cannot exceed base_price")
        if self.base_price - self.final_price != self.discount_amount:
            raise ValueError("discount_amount must equal base_price - final_price")
        if self.applied_discount is None and self.discount_amount != 0:
            raise ValueError("discount_amount requires an applied discount")
        return self

    def to_dict(self) -> dict:
        return {
            'base_price': float(self.base_price),
            'location_tariff_rate': float(self.location_tariff_rate),
            'applied_discount': (
                {
                    'type': self.applied_discount.type.value,
                    'rate': float(self.applied_discount.rate),
                }
                if self.applied_discount else None
            ),
            'discount_amount': float(self.discount_amount),
            'final_price': float(self.final_price),
        }


class OrderCreate(BaseModel):
    """Everything needed to persist a committed order"""
    customer_id: int
    items: List[OrderLineItem] = Field(..., min_length=1)
    pricing: PricingBreakdown
    created_at: datetime


class Order(BaseModel):
    """
    Order domain model - a committed customer order

    Created only by a successful commit and never modified afterwards.
    """

    id: int = Field(..., description="Internal order ID")
    customer_id: int = Field(..., description="Customer ID")
    items: List[OrderLineItem] = Field(default_factory=list, description="Order lines, in request order")
    pricing: PricingBreakdown
    created_at: datetime = Field(..., description="Creation timestamp")

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def total_quantity(self) -> int:
        """Total quantity of all items"""
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict:
        """
        Convert to the order result representation

        Returns dict with id, customer_id, items, pricing and created_at
        """
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'items': [item.to_dict() for item in self.items],
            'pricing': self.pricing.to_dict(),
            'created_at': self.created_at.isoformat(),
        }
