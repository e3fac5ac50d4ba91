# ============================================================================
# SCHEMA BOOTSTRAP
# ============================================================================
# STATUS: Core - Idempotent DDL for the keyed tables
# PURPOSE: Create schema, tables and indexes if missing
# CREATED: 19 OCT 2026
# ============================================================================
"""
Schema Bootstrap

Every table shares one layout, the keyed-store shape:

    partition_key  TEXT          (instance name, job name, asset name)
    row_key        TEXT          (record id)
    event_time     TIMESTAMPTZ   (business time used by range scans)
    payload        JSONB         (full Pydantic model dump)
    created_at     TIMESTAMPTZ   (insertion order, tie-breaker for "latest")
    updated_at     TIMESTAMPTZ
    PRIMARY KEY (partition_key, row_key)

All statements are idempotent (safe to run on every cold start).
"""

import logging
from typing import List

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from repositories.database import SCHEMA, ALL_TABLES

logger = logging.getLogger(__name__)


def schema_statements() -> List[sql.Composed]:
    """DDL statements in execution order."""
    statements: List[sql.Composed] = [
        sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(SCHEMA)),
    ]

    for name, table in ALL_TABLES.items():
        statements.append(
            sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {table} (
                    partition_key TEXT NOT NULL,
                    row_key TEXT NOT NULL,
                    event_time TIMESTAMPTZ NOT NULL,
                    payload JSONB NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
                    PRIMARY KEY (partition_key, row_key)
                )
                """
            ).format(table=table)
        )
        statements.append(
            sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} (partition_key, event_time)").format(
                index=sql.Identifier(f"idx_{name}_partition_time"),
                table=table,
            )
        )
        statements.append(
            sql.SQL(
                "CREATE INDEX IF NOT EXISTS {index} ON {table} ((payload->>'instance_name'), event_time)"
            ).format(
                index=sql.Identifier(f"idx_{name}_instance_time"),
                table=table,
            )
        )

    return statements


async def ensure_schema(pool: AsyncConnectionPool) -> int:
    """Create the schema objects that do not exist yet. Returns statement count."""
    statements = schema_statements()
    async with pool.connection() as conn:
        for statement in statements:
            await conn.execute(statement)
    logger.info(f"Schema {SCHEMA} ensured ({len(statements)} statements)")
    return len(statements)


__all__ = ["schema_statements", "ensure_schema"]
