"""
Customers API Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_catalog_service
from app.api.errors import to_http_exception
from app.core.exceptions import OrderEngineError
from app.domain.order import CustomerCreate
from app.services.catalog_service import CatalogService

router = APIRouter()


@router.post("/", status_code=201)
def create_customer(
    request: CustomerCreate,
    service: CatalogService = Depends(get_catalog_service),
):
    """Create a customer (409 if the email is taken)"""
    try:
        return service.create_customer(request).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating customer: {str(e)}")


@router.get("/{customer_id}")
def get_customer(
    customer_id: int,
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return service.get_customer(customer_id).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching customer: {str(e)}")
