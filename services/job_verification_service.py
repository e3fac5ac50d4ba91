# ============================================================================
# JOB VERIFICATION SERVICE
# ============================================================================
# STATUS: Core - Verification and retry state machine
# PURPOSE: Decide what happens to a job once its verification delay expires
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Verification Service

Runs when a delayed JobVerificationRequest is delivered.

Decision table (after refreshing the status from the backend when the
stored one is missing, older than the resync threshold, or not final):

    superseded by a later submission -> dropped
    Finished                         -> provisioning request (first time only), job deleted
    Error + retriable                -> retry
    not final, older than stuck time -> retry
    Error non-retriable              -> terminal, job deleted
    Canceled                         -> terminal, dropped
    not final, not stuck             -> verify again later, same retry count

A retry with retry_count >= max_retries is terminal and removes the job.
Otherwise the stale job is removed from its instance and the original
request is resubmitted through JobSchedulingService with instance
re-selection.

Every delivery may be a redelivery. A request is superseded when the
latest status record belongs to another instance, or when the backend job
of that name was created after the request's submission; either means a
resubmission already happened. A Finished record is stored only after the
provisioning request was sent, so a failed send is repeated on redelivery.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import httpx
from psycopg_pool import AsyncConnectionPool

from core.config import Settings
from core.contracts import JobState, QueueName, utc_now
from core.errors import MediaServicesApiError
from core.logging import log_checkpoint, log_context
from core.models import (
    JobOutputStatusRecord,
    JobVerificationRequest,
    MediaJob,
    ProvisioningRequest,
    streaming_locator_name_for,
)
from infrastructure.media_services import MediaServicesClientFactory
from infrastructure.service_bus import ServiceBusPublisher
from repositories import JobOutputStatusRepository
from .job_scheduling_service import JobSchedulingService

logger = logging.getLogger(__name__)

# Tolerated drift between our clock and the backend's job creation time
SUBMISSION_CLOCK_SKEW = timedelta(minutes=1)


@dataclass
class JobObservation:
    """Status used for the decision, and where it came from."""
    status: JobOutputStatusRecord
    job: Optional[MediaJob] = None
    from_live_check: bool = False
    previous: Optional[JobOutputStatusRecord] = None
    job_missing: bool = False
    superseded: bool = False

    @property
    def started_at(self) -> datetime:
        if self.job is not None and self.job.created is not None:
            return self.job.created
        return self.status.event_time

    @property
    def previously_finished(self) -> bool:
        return self.previous is not None and self.previous.job_output_state == JobState.FINISHED


class JobVerificationService:
    """Verifies submitted jobs and drives retries."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        settings: Settings,
        scheduling_service: JobSchedulingService,
        client_factory: MediaServicesClientFactory,
        publisher: ServiceBusPublisher,
        status_repo: Optional[JobOutputStatusRepository] = None,
    ):
        self.pool = pool
        self.settings = settings
        self.scheduling_service = scheduling_service
        self.client_factory = client_factory
        self.publisher = publisher
        self.status_repo = status_repo or JobOutputStatusRepository(pool)

    @property
    def resync_threshold(self) -> timedelta:
        return timedelta(minutes=self.settings.jobs.resync_minutes)

    @property
    def stuck_threshold(self) -> timedelta:
        return timedelta(minutes=self.settings.health.job_stuck_minutes)

    def _transform_name(self, request: JobVerificationRequest, status: Optional[JobOutputStatusRecord] = None) -> str:
        if status is not None and status.transform_name:
            return status.transform_name
        return request.original_job_request.transform_name or self.settings.jobs.transform_name

    # ------------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------------

    async def verify_job(self, request: JobVerificationRequest) -> JobVerificationRequest:
        """
        Verify one job.

        Returns the request that now tracks the job: the same request when
        nothing was resubmitted, the new one after a resubmission.
        """
        with log_context(job_name=request.job_name, instance_name=request.instance_name):
            as_of = utc_now()
            observation = await self._observe(request, as_of)
            state = observation.status.job_output_state

            if observation.superseded:
                logger.info(
                    f"Job {request.job_name} was resubmitted after this request "
                    f"(now on {observation.status.instance_name}), dropping"
                )
                log_checkpoint(
                    "verification_superseded",
                    {"job_name": request.job_name, "retry_count": request.retry_count},
                    logger=logger,
                )
                return request

            logger.info(
                f"Verifying job {request.job_name}: state={state.value} "
                f"retriable={observation.status.has_retriable_error} "
                f"live={observation.from_live_check} retry_count={request.retry_count}"
            )

            if state == JobState.FINISHED:
                await self._on_finished(request, observation)
                return request

            if state == JobState.ERROR:
                if observation.status.has_retriable_error:
                    return await self._retry(request, observation, stuck=False)
                logger.error(f"Job {request.job_name} failed with a non-retriable error, dropping")
                log_checkpoint("job_failed", {"job_name": request.job_name, "state": state.value}, logger=logger)
                await self._remove_job(request, observation)
                return request

            if state == JobState.CANCELED:
                logger.warning(f"Job {request.job_name} was canceled, dropping")
                log_checkpoint("job_failed", {"job_name": request.job_name, "state": state.value}, logger=logger)
                return request

            if as_of - observation.started_at > self.stuck_threshold:
                logger.warning(
                    f"Job {request.job_name} still {state.value} since "
                    f"{observation.started_at.isoformat()}, treating as stuck"
                )
                return await self._retry(request, observation, stuck=True)

            await self.publisher.send_message(
                QueueName.JOB_VERIFICATION_REQUESTS,
                request,
                delay=self.scheduling_service.verification_delay,
            )
            logger.info(f"Job {request.job_name} still {state.value}, verification rescheduled")
            return request

    # ------------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------------

    async def _observe(self, request: JobVerificationRequest, as_of: datetime) -> JobObservation:
        latest = await self.status_repo.get_latest(request.job_name, request.output_asset_name)

        if latest is not None and latest.instance_name != request.instance_name:
            return JobObservation(status=latest, previous=latest, superseded=True)

        if (
            latest is not None
            and latest.job_output_state.is_terminal()
            and as_of - latest.event_time <= self.resync_threshold
        ):
            return JobObservation(status=latest, previous=latest)

        reason = "missing" if latest is None else (
            "not final" if not latest.job_output_state.is_terminal() else "stale"
        )
        logger.info(f"Status of job {request.job_name} is {reason}, checking backend")
        return await self._check_live(request, latest, as_of)

    async def _check_live(
        self,
        request: JobVerificationRequest,
        latest: Optional[JobOutputStatusRecord],
        as_of: datetime,
    ) -> JobObservation:
        client = self.client_factory.get_client(request.instance_name)
        job = await client.get_job(self._transform_name(request, latest), request.job_name)

        if job is None:
            if (
                latest is not None
                and latest.job_output_state.is_terminal()
                and not latest.has_retriable_error
            ):
                logger.info(
                    f"Job {request.job_name} already removed from {request.instance_name}, "
                    f"keeping stored state {latest.job_output_state.value}"
                )
                return JobObservation(status=latest, previous=latest, job_missing=True)

            logger.warning(f"Job {request.job_name} not found on {request.instance_name}")
            status = JobOutputStatusRecord(
                job_name=request.job_name,
                output_asset_name=request.output_asset_name,
                job_output_state=JobState.ERROR,
                event_time=as_of,
                instance_name=request.instance_name,
                transform_name=self._transform_name(request, latest),
                has_retriable_error=True,
            )
            return JobObservation(status=status, from_live_check=True, previous=latest, job_missing=True)

        status = JobOutputStatusRecord.from_media_job(job, request.output_asset_name, request.instance_name)
        observation = JobObservation(status=status, job=job, from_live_check=True, previous=latest)

        if job.created is not None and job.created > request.submitted_at + SUBMISSION_CLOCK_SKEW:
            observation.superseded = True
            return observation

        # A first Finished record is stored once provisioning has been requested
        if status.job_output_state != JobState.FINISHED or observation.previously_finished:
            await self.status_repo.create(status)
        return observation

    # ------------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------------

    async def _on_finished(self, request: JobVerificationRequest, observation: JobObservation) -> None:
        if observation.from_live_check and not observation.previously_finished:
            provisioning = ProvisioningRequest(
                processed_asset_name=request.output_asset_name,
                instance_name=request.instance_name,
                streaming_locator_name=streaming_locator_name_for(request.output_asset_name),
            )
            await self.publisher.send_message(QueueName.PROVISIONING_REQUESTS, provisioning)
            await self.status_repo.create(observation.status)
            log_checkpoint(
                "job_verified",
                {"job_name": request.job_name, "provisioning_id": provisioning.id},
                logger=logger,
            )
        else:
            logger.info(f"Job {request.job_name} finished, provisioning already requested")

        await self._remove_job(request, observation)

    async def _retry(
        self,
        request: JobVerificationRequest,
        observation: JobObservation,
        stuck: bool,
    ) -> JobVerificationRequest:
        max_retries = self.settings.jobs.max_retries
        if request.retry_count >= max_retries:
            logger.error(
                f"Job {request.job_name} exhausted its retries "
                f"({request.retry_count}/{max_retries}), dropping"
            )
            log_checkpoint(
                "job_retries_exhausted",
                {"job_name": request.job_name, "retry_count": request.retry_count},
                logger=logger,
            )
            await self._remove_job(request, observation, cancel=stuck)
            return request

        await self._remove_job(request, observation, cancel=stuck)
        return await self.scheduling_service.resubmit_job(request)

    async def _remove_job(
        self,
        request: JobVerificationRequest,
        observation: JobObservation,
        cancel: bool = False,
    ) -> None:
        """Delete the job from its instance to stay under the job quota. Failures are ignored."""
        if observation.job_missing:
            return

        transform_name = self._transform_name(request, observation.status)
        try:
            client = self.client_factory.get_client(request.instance_name)
            if cancel:
                await client.cancel_job(transform_name, request.job_name)
            await client.delete_job(transform_name, request.job_name)
            logger.info(f"Removed job {request.job_name} from {request.instance_name}")
        except (MediaServicesApiError, httpx.TransportError) as e:
            logger.warning(f"Could not remove job {request.job_name} from {request.instance_name}: {e}")


__all__ = ["JobVerificationService", "JobObservation"]
