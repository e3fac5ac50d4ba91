# ============================================================================
# CALL HISTORY REPOSITORY
# ============================================================================
# STATUS: Core - Backend call outcomes per instance
# PURPOSE: Store one record per outbound call, scan by instance and window
# CREATED: 19 OCT 2026
# ============================================================================
"""Call history repository. partition_key = instance name, row_key = record id."""

import logging
from datetime import datetime
from typing import List, Optional

from psycopg_pool import AsyncConnectionPool

from core.models import CallHistoryRecord
from .database import TABLE_CALL_HISTORY
from .keyed_store import KeyedStore

logger = logging.getLogger(__name__)


class CallHistoryRepository:

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.store = KeyedStore(pool, TABLE_CALL_HISTORY)

    async def create(self, record: CallHistoryRecord) -> CallHistoryRecord:
        await self.store.upsert(
            partition_key=record.instance_name,
            row_key=record.id,
            payload=record.model_dump(mode="json"),
            event_time=record.event_time,
        )
        return record

    async def list_by_instance(
        self,
        instance_name: str,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> List[CallHistoryRecord]:
        payloads = await self.store.scan(partition_key=instance_name, since=since, until=until)
        return [CallHistoryRecord.model_validate(p) for p in payloads]
