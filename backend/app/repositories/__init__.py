"""
Repository Layer - Data Access

This layer handles all store access and returns domain models.
Repositories, the inventory ledger and the unit of work abstract away
SQL (or in-memory) details from business logic.

Author: TM3
Date: 2025-10-17
Updated: 2026-10-12 (unit of work, inventory ledger, in-memory store)
"""
from app.repositories.unit_of_work import (
    UnitOfWork,
    UnitOfWorkFactory,
    build_unit_of_work_factory,
)
from app.repositories.memory_store import InMemoryStore
from app.repositories.postgres import PostgresUnitOfWork

__all__ = [
    'UnitOfWork',
    'UnitOfWorkFactory',
    'build_unit_of_work_factory',
    'InMemoryStore',
    'PostgresUnitOfWork',
]
