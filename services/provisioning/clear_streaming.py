# ============================================================================
# CLEAR STREAMING PROVISIONING
# ============================================================================
# STATUS: Service - Provisioning step 2
# PURPOSE: Unencrypted streaming locator on every instance
# CREATED: 19 OCT 2026
# ============================================================================
"""
Clear Streaming Provisioning

Creates request.streaming_locator_name with the ClearStreamingOnly policy
on the source instance, then the same locator (same locator id) on every
target so one URL path works against any instance.
"""

import logging
from typing import ClassVar

from core.models import ProvisioningCompletedEvent, ProvisioningRequest, StreamingLocator
from .base import ProvisioningStep, provision_locator

logger = logging.getLogger(__name__)

CLEAR_STREAMING_POLICY = "Predefined_ClearStreamingOnly"


class ClearStreamingProvisioningStep(ProvisioningStep):
    NAME: ClassVar[str] = "clear_streaming"

    async def provision(self, request: ProvisioningRequest, event: ProvisioningCompletedEvent) -> None:
        self.source_instance(request)
        source = self.client_factory.get_client(request.instance_name)

        source_locator = await provision_locator(
            source,
            request.processed_asset_name,
            StreamingLocator(
                name=request.streaming_locator_name,
                asset_name=request.processed_asset_name,
                streaming_policy_name=CLEAR_STREAMING_POLICY,
                instance_name=request.instance_name,
            ),
        )
        event.add_clear_streaming_locator(source_locator)

        for target_name in self.target_instances(request):
            target = self.client_factory.get_client(target_name)
            target_locator = await provision_locator(
                target,
                request.processed_asset_name,
                source_locator.replica(target_name, content_keys=[]),
            )
            event.add_clear_streaming_locator(target_locator)


__all__ = ["ClearStreamingProvisioningStep", "CLEAR_STREAMING_POLICY"]
