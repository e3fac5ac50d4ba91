# ============================================================================
# JOB SCHEDULING SERVICE
# ============================================================================
# STATUS: Core - Job submission
# PURPOSE: Submit a job to the best instance and schedule its verification
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Scheduling Service

Submission path shared by first submissions and resubmissions:

    1. Select an instance (InstanceHealthService)
    2. Ensure the transform, create-or-update the output asset, create the job
    3. Record usage and write the initial status record (best-effort)
    4. Enqueue a delayed JobVerificationRequest (best-effort)

Steps 3 and 4 run after the job exists on the backend, so their failures
are logged and dropped; raising there would make the dispatcher redeliver
the request and submit the job a second time. The sync service and the
notification path still cover a missing status record.
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from psycopg_pool import AsyncConnectionPool

from core.config import Settings
from core.contracts import QueueName, utc_now
from core.errors import NoAvailableInstanceError, SchedulingUnavailableError
from core.logging import log_checkpoint, log_context
from core.models import JobOutputStatusRecord, JobRequest, JobVerificationRequest, MediaJob
from core.retry import best_effort
from infrastructure.media_services import MediaServicesClientFactory
from infrastructure.service_bus import ServiceBusPublisher
from repositories import JobOutputStatusRepository
from .instance_health_service import InstanceHealthService

logger = logging.getLogger(__name__)


class JobSchedulingService:
    """Submits job requests to the pool of instances."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        settings: Settings,
        health_service: InstanceHealthService,
        client_factory: MediaServicesClientFactory,
        publisher: ServiceBusPublisher,
        status_repo: Optional[JobOutputStatusRepository] = None,
    ):
        self.pool = pool
        self.settings = settings
        self.health_service = health_service
        self.client_factory = client_factory
        self.publisher = publisher
        self.status_repo = status_repo or JobOutputStatusRepository(pool)

    @property
    def verification_delay(self) -> timedelta:
        return timedelta(minutes=self.settings.jobs.verify_delay_minutes)

    async def submit_job(self, job_request: JobRequest) -> MediaJob:
        """
        Submit a new job.

        Raises:
            SchedulingUnavailableError: no enabled instance; the caller redelivers
            MediaServicesApiError / httpx.TransportError: backend failure
        """
        job, _ = await self._submit(job_request, retry_count=0)
        return job

    async def resubmit_job(self, verification_request: JobVerificationRequest) -> JobVerificationRequest:
        """
        Submit the original request again, on a freshly selected instance.

        Returns the verification request that now tracks the job.
        """
        _, verification = await self._submit(
            verification_request.original_job_request,
            retry_count=verification_request.retry_count + 1,
        )
        log_checkpoint(
            "job_resubmitted",
            {
                "job_name": verification.job_name,
                "previous_instance": verification_request.instance_name,
                "instance": verification.instance_name,
                "retry_count": verification.retry_count,
            },
            logger=logger,
        )
        return verification

    async def _submit(
        self,
        job_request: JobRequest,
        retry_count: int,
    ) -> Tuple[MediaJob, JobVerificationRequest]:
        try:
            instance_name = await self.health_service.get_next_available_instance()
        except NoAvailableInstanceError as e:
            raise SchedulingUnavailableError(
                f"Cannot schedule job {job_request.job_name}: {e}"
            ) from e

        transform_name = job_request.transform_name or self.settings.jobs.transform_name

        with log_context(job_name=job_request.job_name, instance_name=instance_name):
            client = self.client_factory.get_client(instance_name)

            await client.ensure_transform(transform_name)
            await client.create_or_update_asset(job_request.output_asset_name)
            job = await client.create_job(
                transform_name=transform_name,
                job_name=job_request.job_name,
                output_asset_name=job_request.output_asset_name,
                input_asset_name=job_request.input_asset_name,
                input_urls=job_request.input_urls,
            )
            logger.info(
                f"Submitted job {job.name} to {instance_name} "
                f"(transform={transform_name}, retry_count={retry_count})"
            )

            self.health_service.record_usage(instance_name)

            status = JobOutputStatusRecord.from_media_job(job, job_request.output_asset_name, instance_name)
            await best_effort(
                lambda: self.status_repo.create(status),
                description=f"initial status record for job {job.name}",
            )

            verification = JobVerificationRequest(
                job_id=job.id,
                job_name=job.name,
                output_asset_name=job_request.output_asset_name,
                instance_name=instance_name,
                original_job_request=job_request,
                retry_count=retry_count,
                submitted_at=job.created or utc_now(),
            )
            await best_effort(
                lambda: self.publisher.send_message(
                    QueueName.JOB_VERIFICATION_REQUESTS,
                    verification,
                    delay=self.verification_delay,
                ),
                description=f"verification request for job {job.name}",
            )

            log_checkpoint(
                "job_submitted",
                {"job_name": job.name, "instance": instance_name, "retry_count": retry_count},
                logger=logger,
            )
            return job, verification


__all__ = ["JobSchedulingService"]
