"""
Error mapping for API endpoints
"""
import logging

from fastapi import HTTPException

from app.core.exceptions import (
    DuplicateCustomer,
    EmptyOrder,
    InsufficientStock,
    InvalidOrderItem,
    NotFoundError,
    OrderEngineError,
    TransientStoreFailure,
)

logger = logging.getLogger(__name__)

# Most specific first
STATUS_CODES = (
    (NotFoundError, 404),
    (InsufficientStock, 409),
    (DuplicateCustomer, 409),
    (InvalidOrderItem, 400),
    (EmptyOrder, 400),
    (TransientStoreFailure, 503),
)


def to_http_exception(error: OrderEngineError) -> HTTPException:
    """Render an order engine error as an HTTPException with a structured detail"""
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            break
    else:
        status_code = 500

    if status_code >= 500:
        logger.warning(f"{error.code}: {error.message}")
    return HTTPException(status_code=status_code, detail=error.to_dict())
