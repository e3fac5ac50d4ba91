# ============================================================================
# JOBS BLUEPRINT
# ============================================================================
# STATUS: Function App - Job lifecycle triggers
# PURPOSE: Submission, scheduling, verification, notifications and sync
# CREATED: 19 OCT 2026
# ============================================================================
"""
Jobs Blueprint

Triggers:
- POST /api/jobs                          queue a JobRequest
- GET  /api/jobs/{job_name}/status        status history of a job
- Service Bus job-requests                JobSchedulingService.submit_job
- Service Bus job-verification-requests   JobVerificationService.verify_job
- Event Grid (Media Services events)      JobOutputStatusService.process_event
- Timer, every 15 minutes                 JobOutputStatusSyncService

Queue triggers raise on failure; the Functions host abandons the message
and Service Bus redelivers it (dead-lettering after max delivery count).
"""

import json
from typing import Any, Dict, Optional

import azure.functions as func
from pydantic import ValidationError

from core.contracts import QueueName, utc_now
from core.logging import ComponentType, get_logger, log_context
from core.models import JobEventData, JobRequest, JobVerificationRequest, MediaJob
from function.dependencies import Services, get_services
from function.models.responses import ErrorResponse, JobStatusResponse, JobSubmitResponse
from infrastructure.service_bus import MessagePublishError
from repositories import JobOutputStatusRepository

logger = get_logger(__name__, ComponentType.FUNCTION)
jobs_bp = func.Blueprint()

SERVICE_BUS_CONNECTION = "ServiceBusConnection"


def _json_response(data: dict, status_code: int = 200) -> func.HttpResponse:
    """Create JSON HTTP response."""
    return func.HttpResponse(
        json.dumps(data, default=str),
        status_code=status_code,
        headers={"Content-Type": "application/json"},
    )


def event_grid_envelope(event: func.EventGridEvent) -> Dict[str, Any]:
    """Functions EventGridEvent -> Event Grid schema envelope."""
    return {
        "id": event.id,
        "topic": event.topic,
        "subject": event.subject,
        "eventType": event.event_type,
        "eventTime": event.event_time.isoformat() if event.event_time else None,
        "dataVersion": event.data_version,
        "data": event.get_json() or {},
    }


# ============================================================================
# HANDLERS
# ============================================================================

async def handle_job_request(services: Services, body: str) -> MediaJob:
    request = JobRequest.model_validate_json(body)
    with log_context(request_id=request.id, job_name=request.job_name):
        return await services.scheduling.submit_job(request)


async def handle_verification_request(services: Services, body: str) -> JobVerificationRequest:
    request = JobVerificationRequest.model_validate_json(body)
    with log_context(request_id=request.id):
        return await services.verification.verify_job(request)


async def handle_job_event(services: Services, envelope: Dict[str, Any]) -> Optional[JobEventData]:
    return await services.job_output_status.process_event(envelope)


# ============================================================================
# HTTP
# ============================================================================

@jobs_bp.route(route="jobs", methods=["POST"])
async def submit_job(req: func.HttpRequest) -> func.HttpResponse:
    """
    Queue a job request.

    POST /api/jobs
    Body: JobRequest JSON
    Returns: JobSubmitResponse (202 Accepted)
    """
    try:
        request = JobRequest.model_validate(req.get_json())
    except (ValueError, ValidationError) as e:
        logger.warning(f"Invalid job request: {e}")
        return _json_response(
            ErrorResponse(error="Invalid request", details=str(e), code="INVALID").model_dump(),
            status_code=400,
        )

    services = await get_services()
    try:
        message_id = await services.publisher.send_message(QueueName.JOB_REQUESTS, request)
    except MessagePublishError as e:
        logger.error(f"Failed to queue job {request.job_name}: {e}")
        return _json_response(
            ErrorResponse(error="Failed to queue job", details=str(e)).model_dump(),
            status_code=503,
        )

    response = JobSubmitResponse(message_id=message_id, job_name=request.job_name, submitted_at=utc_now())
    return _json_response(response.model_dump(mode="json"), status_code=202)


@jobs_bp.route(route="jobs/{job_name}/status", methods=["GET"])
async def job_status(req: func.HttpRequest) -> func.HttpResponse:
    """
    Status history of a job.

    GET /api/jobs/{job_name}/status
    """
    job_name = req.route_params.get("job_name")
    services = await get_services()
    history = await JobOutputStatusRepository(services.pool).list_for_job(job_name)
    if not history:
        return _json_response(
            ErrorResponse(error="Job not found", details=f"No status for job '{job_name}'", code="NOT_FOUND").model_dump(),
            status_code=404,
        )
    latest = max(history, key=lambda r: r.event_time)
    return _json_response(JobStatusResponse(job_name=job_name, latest=latest, history=history).model_dump(mode="json"))


# ============================================================================
# QUEUES / EVENTS / TIMERS
# ============================================================================

@jobs_bp.service_bus_queue_trigger(
    arg_name="msg",
    queue_name=QueueName.JOB_REQUESTS.value,
    connection=SERVICE_BUS_CONNECTION,
)
async def job_scheduling(msg: func.ServiceBusMessage) -> None:
    await handle_job_request(await get_services(), msg.get_body().decode("utf-8"))


@jobs_bp.service_bus_queue_trigger(
    arg_name="msg",
    queue_name=QueueName.JOB_VERIFICATION_REQUESTS.value,
    connection=SERVICE_BUS_CONNECTION,
)
async def job_verification(msg: func.ServiceBusMessage) -> None:
    await handle_verification_request(await get_services(), msg.get_body().decode("utf-8"))


@jobs_bp.event_grid_trigger(arg_name="event")
async def job_output_status(event: func.EventGridEvent) -> None:
    await handle_job_event(await get_services(), event_grid_envelope(event))


@jobs_bp.timer_trigger(schedule="0 */15 * * * *", arg_name="timer", run_on_startup=False)
async def job_output_status_sync(timer: func.TimerRequest) -> None:
    if timer.past_due:
        logger.warning("Status sync timer is past due")
    services = await get_services()
    await services.sync.sync_job_output_status(utc_now())


__all__ = [
    "jobs_bp",
    "event_grid_envelope",
    "handle_job_request",
    "handle_verification_request",
    "handle_job_event",
]
