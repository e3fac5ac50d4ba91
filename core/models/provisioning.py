# ============================================================================
# PROVISIONING MODELS
# ============================================================================
# STATUS: Core model - Provisioning request and completion event
# PURPOSE: Input of the provisioning pipeline and its single output event
# CREATED: 19 OCT 2026
# EXPORTS: ProvisioningRequest, ProvisioningCompletedEvent
# DEPENDENCIES: pydantic
# ============================================================================
"""
Provisioning Models

ProvisioningRequest is enqueued once per finished job. The orchestrator
creates one ProvisioningCompletedEvent per request, lets each step add to
it, and stores it only after every step succeeded.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import utc_now
from core.models.media import StreamingLocator


def streaming_locator_name_for(asset_name: str) -> str:
    """Default clear streaming locator name for a processed asset."""
    return f"streaming-{asset_name}"


class ProvisioningRequest(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    processed_asset_name: str = Field(..., max_length=256)
    instance_name: str = Field(..., max_length=64, description="Instance holding the processed asset")
    streaming_locator_name: str = Field(..., max_length=256)


class ProvisioningCompletedEvent(BaseModel):
    """
    Accumulated result of one provisioning pipeline run.

    Maps to: encoding_ha.provisioning_events (partition_key=asset_name, row_key=id)
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    asset_name: str = Field(..., max_length=256)
    primary_url: Optional[str] = Field(default=None, description="DASH playback URL with token")
    instance_names: List[str] = Field(
        default_factory=list,
        description="Instances the processed asset was replicated to",
    )
    clear_streaming_locators: List[StreamingLocator] = Field(default_factory=list)
    clear_key_streaming_locators: List[StreamingLocator] = Field(default_factory=list)
    completed_at: Optional[datetime] = Field(default=None)

    def add_instance_name(self, instance_name: str) -> None:
        if instance_name not in self.instance_names:
            self.instance_names.append(instance_name)

    def add_clear_streaming_locator(self, locator: StreamingLocator) -> None:
        self.clear_streaming_locators.append(locator)

    def add_clear_key_streaming_locator(self, locator: StreamingLocator) -> None:
        self.clear_key_streaming_locators.append(locator)

    def mark_completed(self) -> None:
        self.completed_at = utc_now()
