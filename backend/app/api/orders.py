"""
Orders API Endpoints
Commits orders and looks up committed orders

Author: TM3
Date: 2025-10-03
Updated: 2026-10-12 (order commit through OrderCommitService)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_order_commit_service
from app.api.errors import to_http_exception
from app.core.exceptions import OrderEngineError
from app.domain.order import OrderRequest
from app.services.order_commit_service import OrderCommitService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", status_code=201)
def create_order(
    request: OrderRequest,
    service: OrderCommitService = Depends(get_order_commit_service),
):
    """
    Commit an order

    Prices the requested items for the customer's location, reserves stock
    for every item and stores the order, all or nothing.

    Returns the order with its line items and pricing breakdown
    """
    try:
        order = service.commit_order(request.customer_id, request.products)
        logger.info(
            f"Order {order.id} committed for customer {order.customer_id}: "
            f"{len(order.items)} line(s), final {order.pricing.final_price}"
        )
        return order.to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.exception("Unexpected error committing order")
        raise HTTPException(status_code=500, detail=f"Error creating order: {str(e)}")


@router.get("/{order_id}")
def get_order(
    order_id: int,
    service: OrderCommitService = Depends(get_order_commit_service),
):
    """Get a committed order by ID"""
    try:
        return service.get_order(order_id).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")
