# ============================================================================
# INSTANCE HEALTH REPOSITORY
# ============================================================================
# STATUS: Core - Instance health record persistence
# PURPOSE: One record per instance; partition and row key are the instance name
# CREATED: 19 OCT 2026
# ============================================================================
"""
Instance Health Repository

Durable record of each instance's health state and enablement flag.
Concurrent writers resolve by last-write-wins.
"""

import logging
from datetime import datetime
from typing import List, Optional

from psycopg_pool import AsyncConnectionPool

from core.contracts import InstanceHealthState, utc_now
from core.models import InstanceHealthRecord
from .database import TABLE_INSTANCE_HEALTH
from .keyed_store import KeyedStore

logger = logging.getLogger(__name__)


class InstanceHealthRepository:
    """Repository for InstanceHealthRecord entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.store = KeyedStore(pool, TABLE_INSTANCE_HEALTH)

    async def create_or_update(self, record: InstanceHealthRecord) -> InstanceHealthRecord:
        await self.store.upsert(
            partition_key=record.instance_name,
            row_key=record.instance_name,
            payload=record.model_dump(mode="json"),
            event_time=record.last_updated,
        )
        return record

    async def get(self, instance_name: str) -> Optional[InstanceHealthRecord]:
        payload = await self.store.get(instance_name, instance_name)
        return InstanceHealthRecord.model_validate(payload) if payload else None

    async def list(self) -> List[InstanceHealthRecord]:
        """All records, sorted by instance name."""
        payloads = await self.store.scan()
        records = [InstanceHealthRecord.model_validate(p) for p in payloads]
        return sorted(records, key=lambda r: r.instance_name)

    async def update_health_state(
        self,
        instance_name: str,
        state: InstanceHealthState,
        at: Optional[datetime] = None,
    ) -> InstanceHealthRecord:
        """Set the health state, keeping the enablement flag. Creates the record if missing."""
        record = await self.get(instance_name) or InstanceHealthRecord(instance_name=instance_name)
        record.health_state = state
        record.last_updated = at or utc_now()
        return await self.create_or_update(record)

    async def set_enabled(self, instance_name: str, is_enabled: bool) -> InstanceHealthRecord:
        """Operator override. Creates the record if missing."""
        record = await self.get(instance_name) or InstanceHealthRecord(instance_name=instance_name)
        record.is_enabled = is_enabled
        record.last_updated = utc_now()
        logger.info(f"Instance {instance_name} enabled={is_enabled}")
        return await self.create_or_update(record)
