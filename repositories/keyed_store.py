# ============================================================================
# KEYED STORE
# ============================================================================
# STATUS: Core - Partition/row keyed upsert, get and time-range scan
# PURPOSE: Table-store style access on top of PostgreSQL JSONB
# CREATED: 19 OCT 2026
# ============================================================================
"""
Keyed Store

Generic storage primitive used by every repository:

    upsert(partition_key, row_key, payload, event_time)
    get(partition_key, row_key) -> payload | None
    scan(partition_key, since, until) -> [payload]

Writes are always upserts (INSERT ... ON CONFLICT DO UPDATE), so a
redelivered message writing the same record twice is harmless.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)


class KeyedStore:
    """Partition + row keyed JSONB table."""

    def __init__(self, pool: AsyncConnectionPool, table: sql.Identifier):
        self.pool = pool
        self.table = table

    async def upsert(
        self,
        partition_key: str,
        row_key: str,
        payload: Dict[str, Any],
        event_time: datetime,
    ) -> None:
        """Insert or replace one record."""
        query = sql.SQL(
            """
            INSERT INTO {table} (partition_key, row_key, event_time, payload)
            VALUES (%(partition_key)s, %(row_key)s, %(event_time)s, %(payload)s)
            ON CONFLICT (partition_key, row_key) DO UPDATE SET
                event_time = EXCLUDED.event_time,
                payload = EXCLUDED.payload,
                updated_at = clock_timestamp()
            """
        ).format(table=self.table)

        async with self.pool.connection() as conn:
            await conn.execute(
                query,
                {
                    "partition_key": partition_key,
                    "row_key": row_key,
                    "event_time": event_time,
                    "payload": Jsonb(payload),
                },
            )

    async def get(self, partition_key: str, row_key: str) -> Optional[Dict[str, Any]]:
        """Fetch one record's payload, or None."""
        query = sql.SQL(
            "SELECT payload FROM {table} WHERE partition_key = %s AND row_key = %s"
        ).format(table=self.table)

        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(query, (partition_key, row_key))
            row = await result.fetchone()
            return row["payload"] if row else None

    async def scan(
        self,
        partition_key: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        payload_equals: Optional[Dict[str, str]] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Range scan on event_time.

        Args:
            partition_key: Restrict to one partition (None scans all partitions)
            since: Inclusive lower bound on event_time
            until: Exclusive upper bound on event_time
            payload_equals: Extra equality filters on top-level payload fields
            newest_first: Order by event_time (then insertion) descending
            limit: Maximum number of rows
        """
        clauses: List[sql.Composable] = []
        params: List[Any] = []

        if partition_key is not None:
            clauses.append(sql.SQL("partition_key = %s"))
            params.append(partition_key)
        if since is not None:
            clauses.append(sql.SQL("event_time >= %s"))
            params.append(since)
        if until is not None:
            clauses.append(sql.SQL("event_time < %s"))
            params.append(until)
        for field_name, value in (payload_equals or {}).items():
            clauses.append(sql.SQL("payload->>{} = %s").format(sql.Literal(field_name)))
            params.append(value)

        where = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses) if clauses else sql.SQL("")
        direction = sql.SQL("DESC") if newest_first else sql.SQL("ASC")
        query = sql.SQL("SELECT payload FROM {table}{where} ORDER BY event_time {dir}, created_at {dir}").format(
            table=self.table,
            where=where,
            dir=direction,
        )
        if limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(limit)

        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(query, params)
            rows = await result.fetchall()
            return [row["payload"] for row in rows]

    async def list_partition_keys(self) -> List[str]:
        """Distinct partition keys, sorted."""
        query = sql.SQL("SELECT DISTINCT partition_key FROM {table} ORDER BY partition_key").format(
            table=self.table
        )
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(query)
            rows = await result.fetchall()
            return [row["partition_key"] for row in rows]


__all__ = ["KeyedStore"]
