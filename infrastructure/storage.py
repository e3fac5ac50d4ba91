# ============================================================================
# BLOB STORAGE INFRASTRUCTURE
# ============================================================================
# STATUS: Infrastructure - Azure Blob Storage operations
# PURPOSE: Server-side copy of an asset container between instances
# CREATED: 19 OCT 2026
# ============================================================================
"""
Blob Storage Infrastructure

AssetContainerCopier copies every blob of one asset container into
another using SAS URLs obtained from Media Services (listContainerSas).
The copy is server-side (start_copy_from_url); nothing is streamed
through this process. Each copy is polled until it leaves the 'pending'
state.

Usage:
    copier = AssetContainerCopier()
    copied = await copier.copy_container(source_sas_url, target_sas_url)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List
from urllib.parse import quote, urlsplit, urlunsplit

from azure.core.exceptions import AzureError
from azure.storage.blob.aio import BlobClient, ContainerClient

from core.errors import ProvisioningError

logger = logging.getLogger(__name__)

COPY_POLL_INTERVAL_SECONDS = 2.0
COPY_TIMEOUT_SECONDS = 1800.0


def blob_url(container_sas_url: str, blob_name: str) -> str:
    """URL of a blob inside a container SAS URL, keeping the SAS query."""
    parts = urlsplit(container_sas_url)
    path = f"{parts.path.rstrip('/')}/{quote(blob_name)}"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


@dataclass
class CopyResult:
    blobs: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


class AssetContainerCopier:
    """Copies asset containers blob by blob using SAS URLs."""

    def __init__(
        self,
        poll_interval_seconds: float = COPY_POLL_INTERVAL_SECONDS,
        timeout_seconds: float = COPY_TIMEOUT_SECONDS,
    ):
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds

    async def list_blob_names(self, container_sas_url: str) -> List[str]:
        async with ContainerClient.from_container_url(container_sas_url) as container:
            return [blob.name async for blob in container.list_blobs()]

    async def copy_blob(self, source_url: str, target_url: str) -> str:
        """Start a server-side copy and wait for it. Returns the final copy status."""
        async with BlobClient.from_blob_url(target_url) as target:
            await target.start_copy_from_url(source_url)

            elapsed = 0.0
            while True:
                properties = await target.get_blob_properties()
                status = properties.copy.status
                if status != "pending":
                    return status
                if elapsed >= self.timeout_seconds:
                    await target.abort_copy(properties.copy.id)
                    return "aborted"
                await asyncio.sleep(self.poll_interval_seconds)
                elapsed += self.poll_interval_seconds

    async def copy_container(self, source_sas_url: str, target_sas_url: str) -> CopyResult:
        """
        Copy all blobs of the source container into the target container.

        Raises:
            ProvisioningError: a blob could not be copied, or storage failed
        """
        result = CopyResult()
        try:
            names = await self.list_blob_names(source_sas_url)
            logger.info(f"Copying {len(names)} blobs between asset containers")
            for name in names:
                status = await self.copy_blob(blob_url(source_sas_url, name), blob_url(target_sas_url, name))
                if status == "success":
                    result.blobs.append(name)
                else:
                    logger.error(f"Copy of blob {name} ended with status {status}")
                    result.failed.append(name)
        except AzureError as e:
            raise ProvisioningError(f"Asset container copy failed: {e}") from e

        if not result.success:
            raise ProvisioningError(f"Asset container copy failed for blobs: {', '.join(result.failed)}")
        return result


__all__ = [
    "AssetContainerCopier",
    "CopyResult",
    "blob_url",
]
