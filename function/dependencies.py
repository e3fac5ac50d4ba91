# ============================================================================
# FUNCTION DEPENDENCIES
# ============================================================================
# STATUS: Function App - Service wiring
# PURPOSE: Build the service graph once per worker process
# CREATED: 19 OCT 2026
# ============================================================================
"""
Function Dependencies

All triggers share one set of services per worker process: one
PostgreSQL pool, one Media Services client factory, one Service Bus
publisher and one InstanceHealthService (which holds the in-process
usage counts).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from psycopg_pool import AsyncConnectionPool

from core.config import Settings, get_settings
from infrastructure.media_services import MediaServicesClientFactory
from infrastructure.service_bus import ServiceBusPublisher, get_publisher
from repositories import CallHistoryRepository, ensure_schema, get_pool
from services import (
    InstanceHealthService,
    JobOutputStatusService,
    JobOutputStatusSyncService,
    JobSchedulingService,
    JobVerificationService,
    ProvisioningOrchestrator,
    default_steps,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    pool: AsyncConnectionPool
    client_factory: MediaServicesClientFactory
    publisher: ServiceBusPublisher
    health: InstanceHealthService
    scheduling: JobSchedulingService
    verification: JobVerificationService
    job_output_status: JobOutputStatusService
    sync: JobOutputStatusSyncService
    provisioning: ProvisioningOrchestrator


def build_services(
    settings: Settings,
    pool: AsyncConnectionPool,
    publisher: ServiceBusPublisher,
    client_factory: Optional[MediaServicesClientFactory] = None,
) -> Services:
    client_factory = client_factory or MediaServicesClientFactory(
        settings.instances, CallHistoryRepository(pool)
    )
    health = InstanceHealthService(pool, settings.health)
    scheduling = JobSchedulingService(pool, settings, health, client_factory, publisher)
    return Services(
        settings=settings,
        pool=pool,
        client_factory=client_factory,
        publisher=publisher,
        health=health,
        scheduling=scheduling,
        verification=JobVerificationService(pool, settings, scheduling, client_factory, publisher),
        job_output_status=JobOutputStatusService(pool, publisher),
        sync=JobOutputStatusSyncService(pool, settings, client_factory, publisher),
        provisioning=ProvisioningOrchestrator(pool, default_steps(settings, client_factory)),
    )


_services: Optional[Services] = None
_services_lock = asyncio.Lock()


async def get_services() -> Services:
    """Services for this process, created (schema and instance records included) on first use."""
    global _services
    if _services is not None:
        return _services

    async with _services_lock:
        if _services is None:
            settings = get_settings()
            pool = await get_pool()
            await ensure_schema(pool)
            services = build_services(settings, pool, get_publisher())
            await services.health.ensure_instances(settings.instances)
            _services = services
            logger.info(f"Services ready for instances: {', '.join(sorted(settings.instances))}")
    return _services


def set_services(services: Optional[Services]) -> None:
    """Install (or clear, with None) the process services. Used by tests."""
    global _services
    _services = services


__all__ = ["Services", "build_services", "get_services", "set_services"]
