# ============================================================================
# JOB OUTPUT STATUS SYNC SERVICE
# ============================================================================
# STATUS: Core - Compensation for missed notifications
# PURPOSE: Refresh stale, non-final job statuses from the backend
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Output Status Sync Service

Event Grid delivery is not guaranteed. On a timer, every configured
instance is scanned for jobs whose latest status record is not final and
older than the resync threshold; each such job is read from the backend
and a new record is written when the backend reports something new.

Running it twice with the same as_of and no backend change writes
nothing the second time.
A Finished record is stored only after its provisioning request was sent;
if the send fails the job stays stale and the next run sends again.

When many jobs of one transform are stale, a single paged list call is
cheaper than one get per job:

    use list when  stale > (total // page_size + 1) * 8
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from psycopg_pool import AsyncConnectionPool

from core.config import Settings
from core.contracts import JobState, QueueName, utc_now
from core.logging import log_context
from core.models import (
    JobOutputStatusRecord,
    MediaJob,
    ProvisioningRequest,
    streaming_locator_name_for,
)
from infrastructure.media_services import MediaServicesClient, MediaServicesClientFactory
from infrastructure.service_bus import ServiceBusPublisher
from repositories import JobOutputStatusRepository

logger = logging.getLogger(__name__)

# Individual gets tolerated per page of the list operation
GETS_PER_PAGE = 8


def latest_per_job(records: List[JobOutputStatusRecord]) -> Dict[str, JobOutputStatusRecord]:
    """Latest record per job name. Records arrive oldest first; later rows win ties."""
    latest: Dict[str, JobOutputStatusRecord] = {}
    for record in records:
        current = latest.get(record.job_name)
        if current is None or record.event_time >= current.event_time:
            latest[record.job_name] = record
    return latest


def is_new_observation(fetched: JobOutputStatusRecord, latest: JobOutputStatusRecord) -> bool:
    """False when the fetched record adds nothing over the stored latest one."""
    if fetched.same_observation(latest):
        return False
    unchanged = (
        fetched.job_output_state == latest.job_output_state
        and fetched.has_retriable_error == latest.has_retriable_error
    )
    return not (unchanged and fetched.event_time <= latest.event_time)


def should_use_list(stale_count: int, total_count: int, page_size: int) -> bool:
    return stale_count > (total_count // page_size + 1) * GETS_PER_PAGE


class JobOutputStatusSyncService:
    """Polls the backend for jobs whose notifications may have been lost."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        settings: Settings,
        client_factory: MediaServicesClientFactory,
        publisher: ServiceBusPublisher,
        status_repo: Optional[JobOutputStatusRepository] = None,
    ):
        self.pool = pool
        self.settings = settings
        self.client_factory = client_factory
        self.publisher = publisher
        self.status_repo = status_repo or JobOutputStatusRepository(pool)

    async def sync_job_output_status(self, as_of: Optional[datetime] = None) -> List[JobOutputStatusRecord]:
        """Refresh stale statuses on every instance. Returns the records written."""
        as_of = as_of or utc_now()
        written: List[JobOutputStatusRecord] = []
        for instance_name in sorted(self.settings.instances):
            with log_context(instance_name=instance_name):
                written.extend(await self.sync_instance(instance_name, as_of))
        logger.info(f"Status sync wrote {len(written)} records")
        return written

    async def sync_instance(self, instance_name: str, as_of: datetime) -> List[JobOutputStatusRecord]:
        window_start = as_of - timedelta(minutes=self.settings.health.job_history_window_minutes)
        resync_before = as_of - timedelta(minutes=self.settings.jobs.resync_minutes)

        records = await self.status_repo.list_by_instance(instance_name, since=window_start, until=as_of)
        latest = latest_per_job(records)

        totals: Dict[str, int] = {}
        stale: Dict[str, List[JobOutputStatusRecord]] = {}
        for record in latest.values():
            if not record.transform_name:
                continue
            totals[record.transform_name] = totals.get(record.transform_name, 0) + 1
            if not record.job_output_state.is_terminal() and record.event_time < resync_before:
                stale.setdefault(record.transform_name, []).append(record)

        if not stale:
            return []

        client = self.client_factory.get_client(instance_name)
        written: List[JobOutputStatusRecord] = []
        for transform_name, stale_records in sorted(stale.items()):
            jobs = await self._fetch_jobs(
                client, transform_name, stale_records, totals[transform_name], window_start
            )
            for previous in stale_records:
                job = jobs.get(previous.job_name)
                if job is None:
                    logger.warning(f"Job {previous.job_name} not found on {instance_name}")
                    continue
                record = await self._store_if_new(job, previous, instance_name)
                if record is not None:
                    written.append(record)
        return written

    async def _fetch_jobs(
        self,
        client: MediaServicesClient,
        transform_name: str,
        stale_records: List[JobOutputStatusRecord],
        total: int,
        window_start: datetime,
    ) -> Dict[str, MediaJob]:
        page_size = self.settings.jobs.sync_page_size
        if should_use_list(len(stale_records), total, page_size):
            logger.info(
                f"Listing jobs of {transform_name} on {client.instance_name} "
                f"({len(stale_records)} stale of {total})"
            )
            jobs = await client.list_jobs(transform_name, created_after=window_start)
            return {job.name: job for job in jobs}

        fetched: Dict[str, MediaJob] = {}
        for record in stale_records:
            job = await client.get_job(transform_name, record.job_name)
            if job is not None:
                fetched[job.name] = job
        return fetched

    async def _store_if_new(
        self,
        job: MediaJob,
        previous: JobOutputStatusRecord,
        instance_name: str,
    ) -> Optional[JobOutputStatusRecord]:
        record = JobOutputStatusRecord.from_media_job(job, previous.output_asset_name, instance_name)
        if not is_new_observation(record, previous):
            return None

        # Stale records are never final, so a fetched Finished is the first one
        if record.job_output_state == JobState.FINISHED:
            await self.publisher.send_message(
                QueueName.PROVISIONING_REQUESTS,
                ProvisioningRequest(
                    processed_asset_name=record.output_asset_name,
                    instance_name=instance_name,
                    streaming_locator_name=streaming_locator_name_for(record.output_asset_name),
                ),
            )

        await self.status_repo.create(record)
        logger.info(
            f"Synced job {record.job_name}: {previous.job_output_state.value} -> "
            f"{record.job_output_state.value}"
        )
        return record


__all__ = [
    "JobOutputStatusSyncService",
    "latest_per_job",
    "is_new_observation",
    "should_use_list",
]
