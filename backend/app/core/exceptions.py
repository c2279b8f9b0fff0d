"""
Order Engine Errors

Structured error values raised by the pricing and order-commit core.
The boundary layer (API) decides how each kind is rendered.

Author: TM3
Date: 2026-10-12
"""
from typing import Any, Dict, Optional


class OrderEngineError(Exception):
    """Base class for every error surfaced by the order engine"""

    code = "order_engine_error"
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Machine-readable representation for the boundary layer"""
        return {"error": self.code, "message": self.message, **self.details}


class NotFoundError(OrderEngineError):
    code = "not_found"


class CustomerNotFound(NotFoundError):
    code = "customer_not_found"

    def __init__(self, customer_id: int):
        super().__init__(f"Customer {customer_id} not found", customer_id=customer_id)
        self.customer_id = customer_id


class ProductNotFound(NotFoundError):
    code = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", product_id=product_id)
        self.product_id = product_id


class OrderNotFound(NotFoundError):
    code = "order_not_found"

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found", order_id=order_id)
        self.order_id = order_id


class InsufficientStock(OrderEngineError):
    """Requested quantity exceeds the product's available stock"""

    code = "insufficient_stock"

    def __init__(self, product_id: int, requested: Optional[int] = None, available: Optional[int] = None):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            product_id=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidOrderItem(OrderEngineError):
    code = "invalid_order_item"

    def __init__(self, product_id: Optional[int], quantity: int):
        super().__init__(
            f"Quantity must be a positive integer (got {quantity})",
            product_id=product_id,
            quantity=quantity,
        )
        self.product_id = product_id
        self.quantity = quantity


class EmptyOrder(OrderEngineError):
    code = "empty_order"

    def __init__(self):
        super().__init__("An order needs at least one item")


class DuplicateCustomer(OrderEngineError):
    code = "duplicate_customer"

    def __init__(self, email: str):
        super().__init__(f"Customer with email {email} already exists", email=email)
        self.email = email


class TransientStoreFailure(OrderEngineError):
    """
    The backing store aborted the unit of work (write conflict, deadlock,
    timeout, lost connection). Nothing was committed, so the whole
    operation can be retried from the start.
    """

    code = "transient_store_failure"
    retryable = True

    def __init__(self, message: str = "Unit of work aborted by the backing store"):
        super().__init__(message)
