# ============================================================================
# JOB OUTPUT STATUS REPOSITORY
# ============================================================================
# STATUS: Core - Append-only job output status history
# PURPOSE: Store status records and answer "latest" and window queries
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Output Status Repository

Keys:
    partition_key = job_name
    row_key       = record id (event id)

"Latest" for a job+output is the record with the greatest event_time;
records with equal event_time are ordered by insertion, newest first.
"""

import logging
from datetime import datetime
from typing import List, Optional

from psycopg_pool import AsyncConnectionPool

from core.models import JobOutputStatusRecord
from .database import TABLE_JOB_OUTPUT_STATUS
from .keyed_store import KeyedStore

logger = logging.getLogger(__name__)


class JobOutputStatusRepository:
    """Repository for JobOutputStatusRecord entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.store = KeyedStore(pool, TABLE_JOB_OUTPUT_STATUS)

    async def create(self, record: JobOutputStatusRecord) -> JobOutputStatusRecord:
        """Persist a record. Re-writing the same event id is an idempotent upsert."""
        await self.store.upsert(
            partition_key=record.partition_key,
            row_key=record.row_key,
            payload=record.model_dump(mode="json"),
            event_time=record.event_time,
        )
        logger.debug(
            f"Stored job output status {record.job_name}/{record.output_asset_name} "
            f"state={record.job_output_state.value}"
        )
        return record

    async def get(self, job_name: str, record_id: str) -> Optional[JobOutputStatusRecord]:
        payload = await self.store.get(job_name, record_id)
        return JobOutputStatusRecord.model_validate(payload) if payload else None

    async def get_latest(self, job_name: str, output_asset_name: str) -> Optional[JobOutputStatusRecord]:
        payloads = await self.store.scan(
            partition_key=job_name,
            payload_equals={"output_asset_name": output_asset_name},
            newest_first=True,
            limit=1,
        )
        return JobOutputStatusRecord.model_validate(payloads[0]) if payloads else None

    async def list_for_job(
        self,
        job_name: str,
        output_asset_name: Optional[str] = None,
    ) -> List[JobOutputStatusRecord]:
        """History of one job (optionally one output), oldest first."""
        filters = {"output_asset_name": output_asset_name} if output_asset_name else None
        payloads = await self.store.scan(partition_key=job_name, payload_equals=filters)
        return [JobOutputStatusRecord.model_validate(p) for p in payloads]

    async def list_by_instance(
        self,
        instance_name: str,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> List[JobOutputStatusRecord]:
        """Every record of one instance in [since, until), oldest first."""
        payloads = await self.store.scan(
            since=since,
            until=until,
            payload_equals={"instance_name": instance_name},
        )
        return [JobOutputStatusRecord.model_validate(p) for p in payloads]
