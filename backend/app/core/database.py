"""
PostgreSQL database access

This module centralizes database access:
- SQLAlchemy declarative Base and engine (schema definition / creation)
- psycopg2 connections with RealDictCursor and retry logic (queries and
  units of work)

Author: TM3
Updated: 2026-10-12
"""
import time
import logging
from typing import Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)

CONNECTION_TIMEOUT = settings.CONNECTION_TIMEOUT


# ============================================================================
# SQLAlchemy Configuration (schema)
# ============================================================================

# Base para modelos
Base = declarative_base()

_engine: Optional[Engine] = None


def _require_database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL not configured")
    return database_url


def get_engine() -> Engine:
    """Lazily create the SQLAlchemy engine for DATABASE_URL"""
    global _engine
    if _engine is None:
        _engine = create_engine(
            _require_database_url(),
            pool_pre_ping=True,  # Verify connection before use
        )
    return _engine


def init_schema(engine: Optional[Engine] = None) -> None:
    """
    Create all tables declared in app.models (no-op for existing tables)

    Args:
        engine: Engine to use (defaults to the DATABASE_URL engine)
    """
    import app.models  # noqa: F401  (registers the tables on Base.metadata)

    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info(f"Schema ready: {', '.join(sorted(Base.metadata.tables))}")


# ============================================================================
# psycopg2 Connections with Retry Logic
# ============================================================================

def get_db_connection_dict_with_retry(max_retries: Optional[int] = None, retry_delay: Optional[float] = None):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Retries failed connections with exponential backoff. Transactions are
    NOT autocommit: the caller commits or rolls back.

    Args:
        max_retries: Maximum number of connection attempts (default: DB_CONNECT_RETRIES)
        retry_delay: Initial delay between retries in seconds (default: DB_RETRY_DELAY)

    Returns:
        psycopg2 connection with RealDictCursor

    Raises:
        psycopg2.OperationalError: If all retry attempts fail

    Example:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM orders")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    database_url = _require_database_url()
    max_retries = max_retries or settings.DB_CONNECT_RETRIES
    retry_delay = settings.DB_RETRY_DELAY if retry_delay is None else retry_delay

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(
                database_url,
                cursor_factory=RealDictCursor,
                connect_timeout=CONNECTION_TIMEOUT,
            )
            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            # Don't retry on last attempt
            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)

    logger.error(f"All {max_retries} connection attempts failed")
    raise last_error
