"""
API Dependencies
Builds the services the routers use, from application settings.

Tests override get_unit_of_work_factory (app.dependency_overrides) to run
the API on an in-memory store.
"""
from functools import lru_cache

from fastapi import Depends

from app.core.config import settings
from app.domain.pricing import load_pricing_rules
from app.repositories.unit_of_work import UnitOfWorkFactory, build_unit_of_work_factory
from app.services.catalog_service import CatalogService
from app.services.order_commit_service import OrderCommitService
from app.services.pricing_service import PricingService


@lru_cache()
def get_unit_of_work_factory() -> UnitOfWorkFactory:
    """One factory (and, for the memory backend, one store) per process"""
    return build_unit_of_work_factory(
        settings.STORE_BACKEND,
        transaction_timeout_ms=settings.TRANSACTION_TIMEOUT_MS,
        lock_timeout_s=settings.MEMORY_LOCK_TIMEOUT_S,
        seed_demo_data=settings.SEED_DEMO_DATA,
    )


@lru_cache()
def get_pricing_service() -> PricingService:
    return PricingService(load_pricing_rules(settings.PRICING_RULES_PATH))


def get_order_commit_service(
    unit_of_work_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory),
    pricing_service: PricingService = Depends(get_pricing_service),
) -> OrderCommitService:
    return OrderCommitService(unit_of_work_factory, pricing_service)


def get_catalog_service(
    unit_of_work_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory),
) -> CatalogService:
    return CatalogService(unit_of_work_factory)
