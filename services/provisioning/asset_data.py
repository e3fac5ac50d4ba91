# ============================================================================
# ASSET DATA PROVISIONING
# ============================================================================
# STATUS: Service - Provisioning step 1
# PURPOSE: Replicate the processed asset to every other instance
# CREATED: 19 OCT 2026
# ============================================================================
"""
Asset Data Provisioning

For each target instance: make sure the same-named asset exists, then
copy the source container into it blob by blob (server-side copy, SAS
URLs from both instances). The source and every target end up in
event.instance_names.
"""

import logging
from datetime import timedelta
from typing import ClassVar, Optional

from core.errors import ProvisioningError
from core.models import ProvisioningCompletedEvent, ProvisioningRequest
from infrastructure.storage import AssetContainerCopier
from .base import ProvisioningStep

logger = logging.getLogger(__name__)

SAS_LIFETIME = timedelta(hours=1)


class AssetDataProvisioningStep(ProvisioningStep):
    NAME: ClassVar[str] = "asset_data"

    def __init__(self, settings, client_factory, copier: Optional[AssetContainerCopier] = None):
        super().__init__(settings, client_factory)
        self.copier = copier or AssetContainerCopier()

    async def provision(self, request: ProvisioningRequest, event: ProvisioningCompletedEvent) -> None:
        self.source_instance(request)
        event.add_instance_name(request.instance_name)

        source = self.client_factory.get_client(request.instance_name)
        source_urls = await source.list_container_sas(
            request.processed_asset_name, permissions="Read", expires_in=SAS_LIFETIME
        )
        if not source_urls:
            raise ProvisioningError(
                f"No container SAS for asset {request.processed_asset_name} on {request.instance_name}"
            )

        for target_name in self.target_instances(request):
            target = self.client_factory.get_client(target_name)

            if await target.get_asset(request.processed_asset_name) is None:
                await target.create_or_update_asset(request.processed_asset_name)

            target_urls = await target.list_container_sas(
                request.processed_asset_name, permissions="ReadWrite", expires_in=SAS_LIFETIME
            )
            if not target_urls:
                raise ProvisioningError(
                    f"No container SAS for asset {request.processed_asset_name} on {target_name}"
                )

            result = await self.copier.copy_container(source_urls[0], target_urls[0])
            logger.info(
                f"Copied asset {request.processed_asset_name} {request.instance_name} -> "
                f"{target_name} ({len(result.blobs)} blobs)"
            )
            event.add_instance_name(target_name)


__all__ = ["AssetDataProvisioningStep"]
