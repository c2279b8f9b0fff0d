"""
Order Engine - Backend API
Order pricing and inventory commit service
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import customers, orders, products
from app.api.dependencies import get_unit_of_work_factory
from app.core.config import settings
from app.core.database import init_schema
from app.core.seed import seed_demo_data
from app.repositories.unit_of_work import UnitOfWorkFactory

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORE_BACKEND == "postgres":
        if settings.AUTO_CREATE_SCHEMA:
            init_schema()
        if settings.SEED_DEMO_DATA:
            seed_demo_data(get_unit_of_work_factory())
    logger.info(f"{settings.API_TITLE} {settings.API_VERSION} started ({settings.STORE_BACKEND} store)")
    yield


# Crear aplicación FastAPI
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    debug=settings.API_DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(customers.router, prefix="/api/v1/customers", tags=["Customers"])


@app.get("/")
async def root():
    """Root endpoint - API status"""
    return {
        "message": settings.API_TITLE,
        "status": "online",
        "version": settings.API_VERSION,
        "description": settings.API_DESCRIPTION
    }


@app.get("/health")
def health(unit_of_work_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory)):
    """Health check endpoint - tests store connectivity"""
    start_time = time.time()

    store_status = "unknown"
    store_error = None

    try:
        with unit_of_work_factory() as uow:
            uow.products.find_all(limit=1)
        store_status = "connected"
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        store_status = "disconnected"
        store_error = str(e)

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "service": "order-engine",
        "version": settings.API_VERSION,
        "store": {
            "backend": settings.STORE_BACKEND,
            "status": store_status,
            "error": store_error,
        },
        "total_latency_ms": round((time.time() - start_time) * 1000, 2)
    }
