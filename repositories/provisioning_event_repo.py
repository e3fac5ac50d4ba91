# ============================================================================
# PROVISIONING EVENT REPOSITORY
# ============================================================================
# STATUS: Core - Provisioning completed events
# PURPOSE: Persist the single completion event of each pipeline run
# CREATED: 19 OCT 2026
# ============================================================================
"""
Provisioning Event Repository

Keys:
    partition_key = asset_name
    row_key       = event id
"""

import logging
from typing import List, Optional

from psycopg_pool import AsyncConnectionPool

from core.contracts import utc_now
from core.models import ProvisioningCompletedEvent
from .database import TABLE_PROVISIONING_EVENTS
from .keyed_store import KeyedStore

logger = logging.getLogger(__name__)


class ProvisioningEventRepository:
    """Repository for ProvisioningCompletedEvent entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.store = KeyedStore(pool, TABLE_PROVISIONING_EVENTS)

    async def create(self, event: ProvisioningCompletedEvent) -> ProvisioningCompletedEvent:
        await self.store.upsert(
            partition_key=event.asset_name,
            row_key=event.id,
            payload=event.model_dump(mode="json"),
            event_time=event.completed_at or utc_now(),
        )
        logger.info(f"Stored provisioning event {event.id} for asset {event.asset_name}")
        return event

    async def get(self, asset_name: str, event_id: str) -> Optional[ProvisioningCompletedEvent]:
        payload = await self.store.get(asset_name, event_id)
        return ProvisioningCompletedEvent.model_validate(payload) if payload else None

    async def list_for_asset(self, asset_name: str) -> List[ProvisioningCompletedEvent]:
        payloads = await self.store.scan(partition_key=asset_name)
        return [ProvisioningCompletedEvent.model_validate(p) for p in payloads]
