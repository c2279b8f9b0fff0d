"""
Products API Endpoints
Handles product catalog management and stock changes

Author: TM3
Date: 2025-10-03
Updated: 2025-10-17 (refactor: use ProductRepository for data access)
Updated: 2026-10-12 (stock changes through the inventory ledger)
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_catalog_service
from app.api.errors import to_http_exception
from app.core.exceptions import OrderEngineError
from app.domain.product import ProductCreate, StockChange
from app.services.catalog_service import CatalogService

router = APIRouter()


@router.post("/", status_code=201)
def create_product(
    request: ProductCreate,
    service: CatalogService = Depends(get_catalog_service),
):
    """Create a product"""
    try:
        return service.create_product(request).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating product: {str(e)}")


@router.get("/")
def get_products(
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Get products, ordered by ID

    Returns the requested page plus the total product count
    """
    try:
        products, total = service.list_products(limit=limit, offset=offset)

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.get("/{product_id}")
def get_product(
    product_id: int,
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return service.get_product(product_id).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


@router.post("/{product_id}/restock")
def restock_product(
    product_id: int,
    request: StockChange,
    service: CatalogService = Depends(get_catalog_service),
):
    """Increase product stock by amount"""
    try:
        return service.restock_product(product_id, request.amount).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error restocking product: {str(e)}")


@router.post("/{product_id}/sell")
def sell_product(
    product_id: int,
    request: StockChange,
    service: CatalogService = Depends(get_catalog_service),
):
    """Decrease product stock by amount (409 if not enough stock)"""
    try:
        return service.sell_product(product_id, request.amount).to_dict()

    except OrderEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error selling product: {str(e)}")
