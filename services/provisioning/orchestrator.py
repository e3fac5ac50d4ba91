# ============================================================================
# PROVISIONING ORCHESTRATOR
# ============================================================================
# STATUS: Service - Ordered provisioning pipeline
# PURPOSE: Run the steps in order and store one completion event
# CREATED: 19 OCT 2026
# ============================================================================
"""
Provisioning Orchestrator

    asset data -> clear streaming -> clear key streaming -> store event

Each step mutates the same ProvisioningCompletedEvent. The first failure
aborts the pipeline and propagates; nothing is stored. Steps are
idempotent, so a redelivered request re-runs the whole pipeline safely.
"""

from typing import List, Optional, Sequence

from psycopg_pool import AsyncConnectionPool

from core.config import Settings
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import ProvisioningCompletedEvent, ProvisioningRequest
from infrastructure.media_services import MediaServicesClientFactory
from repositories import ProvisioningEventRepository
from .asset_data import AssetDataProvisioningStep
from .base import ProvisioningStep
from .clear_key import ClearKeyStreamingProvisioningStep
from .clear_streaming import ClearStreamingProvisioningStep

logger = get_logger(__name__, ComponentType.PROVISIONING)


def default_steps(settings: Settings, client_factory: MediaServicesClientFactory) -> List[ProvisioningStep]:
    return [
        AssetDataProvisioningStep(settings, client_factory),
        ClearStreamingProvisioningStep(settings, client_factory),
        ClearKeyStreamingProvisioningStep(settings, client_factory),
    ]


class ProvisioningOrchestrator:
    """Runs provisioning steps strictly in sequence."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        steps: Sequence[ProvisioningStep],
        event_repo: Optional[ProvisioningEventRepository] = None,
    ):
        if not steps:
            raise ValueError("ProvisioningOrchestrator requires at least one step")
        self.pool = pool
        self.steps = list(steps)
        self.event_repo = event_repo or ProvisioningEventRepository(pool)

    async def provision(self, request: ProvisioningRequest) -> ProvisioningCompletedEvent:
        event = ProvisioningCompletedEvent(asset_name=request.processed_asset_name)

        with log_context(asset_name=request.processed_asset_name, instance_name=request.instance_name):
            logger.info(f"Provisioning asset {request.processed_asset_name} from {request.instance_name}")

            for step in self.steps:
                logger.info(f"Provisioning step {step.NAME} started")
                await step.provision(request, event)
                logger.info(f"Provisioning step {step.NAME} completed")

            event.mark_completed()
            await self.event_repo.create(event)

            log_checkpoint(
                "provisioning_completed",
                {
                    "asset_name": event.asset_name,
                    "instances": event.instance_names,
                    "clear_streaming_locators": len(event.clear_streaming_locators),
                    "clear_key_streaming_locators": len(event.clear_key_streaming_locators),
                },
                logger=logger,
            )
        return event


__all__ = ["ProvisioningOrchestrator", "default_steps"]
