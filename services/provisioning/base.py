# ============================================================================
# PROVISIONING STEP BASE
# ============================================================================
# STATUS: Service - Shared behaviour of provisioning steps
# PURPOSE: Source/target instance resolution and idempotent locator creation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Provisioning Step Base

Design:
  - ProvisioningStep ABC; each concrete step overrides provision().
  - The source instance is the one holding the processed asset; every
    other configured instance is a target.
  - provision_locator() is idempotent: an existing locator for the same
    asset is reused, a missing one is created, and one bound to another
    asset is an integrity error.
"""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, List

from core.config import MediaServiceInstanceConfig, Settings
from core.errors import ProvisioningError
from core.models import ProvisioningCompletedEvent, ProvisioningRequest, StreamingLocator
from infrastructure.media_services import MediaServicesClient, MediaServicesClientFactory

logger = logging.getLogger(__name__)


class ProvisioningStep(ABC):
    """One stage of the provisioning pipeline."""

    NAME: ClassVar[str] = "step"

    def __init__(self, settings: Settings, client_factory: MediaServicesClientFactory):
        self.settings = settings
        self.client_factory = client_factory

    def source_instance(self, request: ProvisioningRequest) -> MediaServiceInstanceConfig:
        """Config of the instance holding the processed asset (ConfigurationError if unknown)."""
        return self.settings.instance(request.instance_name)

    def target_instances(self, request: ProvisioningRequest) -> List[str]:
        """Every configured instance except the source, in a stable order."""
        source = request.instance_name.lower()
        return sorted(name for name in self.settings.instances if name.lower() != source)

    @abstractmethod
    async def provision(self, request: ProvisioningRequest, event: ProvisioningCompletedEvent) -> None:
        """Do the work and record the outcome on the shared event."""


async def provision_locator(
    client: MediaServicesClient,
    asset_name: str,
    locator: StreamingLocator,
) -> StreamingLocator:
    """
    Get-or-create a streaming locator for asset_name.

    Raises:
        ProvisioningError: a locator with this name exists for another asset
    """
    existing = await client.get_streaming_locator(locator.name)

    if existing is not None and existing.asset_name.lower() != asset_name.lower():
        raise ProvisioningError(
            f"Locator {locator.name} on {client.instance_name} already exists for asset "
            f"{existing.asset_name}, requested asset {asset_name}"
        )

    if existing is not None:
        logger.info(f"Reusing locator {locator.name} on {client.instance_name}")
        return existing

    created = await client.create_streaming_locator(locator)
    logger.info(f"Created locator {created.name} on {client.instance_name} ({created.streaming_policy_name})")
    return created


__all__ = ["ProvisioningStep", "provision_locator"]
