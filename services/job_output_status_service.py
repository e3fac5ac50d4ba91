# ============================================================================
# JOB OUTPUT STATUS SERVICE
# ============================================================================
# STATUS: Core - Push notification intake
# PURPOSE: Persist job output state changes delivered by Event Grid
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Output Status Service

Consumes Media Services notifications:
- JobOutputStateChange variants become JobOutputStatusRecords keyed by the
  event id, so a redelivered event overwrites its own record.
- The first Finished record for a job output enqueues a ProvisioningRequest.
  The request is sent before the record is stored, so a failed send leaves
  no Finished record behind and the redelivered event sends again.
- Job-level state changes and progress events are logged only.
"""

import logging
from typing import Any, Dict, Optional, Union

from psycopg_pool import AsyncConnectionPool

from core.contracts import JobState, QueueName
from core.logging import log_context
from core.models import (
    EventGridEvent,
    JobEventData,
    JobOutputProgressData,
    JobOutputStateChangeData,
    ProvisioningRequest,
    parse_event,
    streaming_locator_name_for,
)
from infrastructure.service_bus import ServiceBusPublisher
from repositories import JobOutputStatusRepository

logger = logging.getLogger(__name__)


class JobOutputStatusService:
    """Turns notifications into status records."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        publisher: ServiceBusPublisher,
        status_repo: Optional[JobOutputStatusRepository] = None,
    ):
        self.pool = pool
        self.publisher = publisher
        self.status_repo = status_repo or JobOutputStatusRepository(pool)

    async def process_event(
        self,
        envelope: Union[EventGridEvent, Dict[str, Any]],
    ) -> Optional[JobEventData]:
        """Handle one Event Grid envelope. Returns the parsed event, or None if ignored."""
        event = parse_event(envelope)
        if event is None:
            logger.debug("Ignoring unrecognized event type")
            return None

        with log_context(job_name=event.job_name, instance_name=event.instance_name):
            if isinstance(event, JobOutputStateChangeData):
                await self._store_output_state(event)
            elif isinstance(event, JobOutputProgressData):
                logger.debug(f"Job {event.job_name} progress {event.progress}%")
            else:
                logger.info(f"Job {event.job_name} on {event.instance_name} is {event.state.value}")
        return event

    async def _store_output_state(self, event: JobOutputStateChangeData) -> None:
        record = event.to_status_record()
        latest = await self.status_repo.get_latest(record.job_name, record.output_asset_name)

        first_finished = record.job_output_state == JobState.FINISHED and (
            latest is None or latest.job_output_state != JobState.FINISHED
        )
        if first_finished:
            request = ProvisioningRequest(
                processed_asset_name=record.output_asset_name,
                instance_name=record.instance_name,
                streaming_locator_name=streaming_locator_name_for(record.output_asset_name),
            )
            await self.publisher.send_message(QueueName.PROVISIONING_REQUESTS, request)

        await self.status_repo.create(record)
        logger.info(
            f"Job {record.job_name} output {record.output_asset_name} is "
            f"{record.job_output_state.value} on {record.instance_name}"
        )


__all__ = ["JobOutputStatusService"]
