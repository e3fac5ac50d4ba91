# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
One pool per process, opened lazily on first use.

Connection settings come from DATABASE_URL, or from the individual
POSTGRES_* variables when DATABASE_URL is absent.

Usage:
    from repositories.database import get_pool

    pool = await get_pool()
    async with pool.connection() as conn:
        await conn.execute("SELECT 1")
"""

import os
import logging
from typing import Optional

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    """
    Database connection string from the environment.

    Priority:
    1. DATABASE_URL
    2. Individual POSTGRES_* components
    """
    if url := os.environ.get("DATABASE_URL"):
        return url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "require")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def has_database_config() -> bool:
    return bool(os.environ.get("DATABASE_URL") or os.environ.get("POSTGRES_HOST"))


async def init_pool(
    min_size: int = 1,
    max_size: int = 10,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Initialize the global connection pool.

    Args:
        min_size: Minimum connections to maintain
        max_size: Maximum connections allowed
        connection_string: Override connection string (defaults to env)
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    conninfo = connection_string or get_connection_string()

    # Mask credentials in logs
    safe_conninfo = conninfo.split("@")[-1] if "@" in conninfo else "<conninfo>"
    logger.info(f"Initializing connection pool: {safe_conninfo}")

    _pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,
    )

    await _pool.open()
    logger.info(f"Connection pool opened (min={min_size}, max={max_size})")

    return _pool


async def get_pool() -> AsyncConnectionPool:
    """Get the global connection pool, initializing if needed."""
    if _pool is None:
        await init_pool()
    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = "encoding_ha"

# Table identifiers, composed with sql.SQL().format() for injection-safe queries
TABLE_INSTANCE_HEALTH = sql.Identifier(SCHEMA, "instance_health")
TABLE_JOB_OUTPUT_STATUS = sql.Identifier(SCHEMA, "job_output_status")
TABLE_CALL_HISTORY = sql.Identifier(SCHEMA, "call_history")
TABLE_PROVISIONING_EVENTS = sql.Identifier(SCHEMA, "provisioning_events")

ALL_TABLES = {
    "instance_health": TABLE_INSTANCE_HEALTH,
    "job_output_status": TABLE_JOB_OUTPUT_STATUS,
    "call_history": TABLE_CALL_HISTORY,
    "provisioning_events": TABLE_PROVISIONING_EVENTS,
}
