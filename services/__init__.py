# ============================================================================
# SERVICES MODULE
# ============================================================================
# STATUS: Core - Business logic layer
# PURPOSE: Health, scheduling, verification, sync and provisioning services
# CREATED: 19 OCT 2026
# ============================================================================
"""
Services Module

Business logic of the encoding HA core.
Services coordinate between repositories, the Media Services clients
and the Service Bus publisher.

Usage:
    from services import InstanceHealthService, JobSchedulingService

    health = InstanceHealthService(pool, settings.health)
    scheduler = JobSchedulingService(pool, settings, health, factory, publisher)
    job = await scheduler.submit_job(request)
"""

from .instance_health_service import InstanceHealthService
from .job_scheduling_service import JobSchedulingService
from .job_verification_service import JobVerificationService
from .job_output_status_service import JobOutputStatusService
from .job_output_status_sync_service import JobOutputStatusSyncService
from .provisioning import ProvisioningOrchestrator, default_steps

__all__ = [
    "InstanceHealthService",
    "JobSchedulingService",
    "JobVerificationService",
    "JobOutputStatusService",
    "JobOutputStatusSyncService",
    "ProvisioningOrchestrator",
    "default_steps",
]
