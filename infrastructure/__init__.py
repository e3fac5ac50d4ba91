# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Infrastructure - Backend, messaging and storage clients
# PURPOSE: Adapters to Media Services, Service Bus and Blob Storage
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module.

Provides:
- MediaServicesClient / MediaServicesClientFactory: ARM REST access per instance
- CallHistoryRecorder: records every backend call outcome
- ServiceBusPublisher: sends (optionally delayed) queue messages
- AssetContainerCopier: server-side copy between asset containers
"""

from infrastructure.call_history import (
    CallHistoryRecorder,
    describe_call,
    NO_RESPONSE_STATUS,
)
from infrastructure.media_services import (
    MediaServicesClient,
    MediaServicesClientFactory,
    ADAPTIVE_STREAMING_PRESET,
)
from infrastructure.service_bus import (
    ServiceBusConfig,
    ServiceBusPublisher,
    MessagePublishError,
    get_publisher,
    reset_publisher,
)
from infrastructure.storage import (
    AssetContainerCopier,
    CopyResult,
)

__all__ = [
    "CallHistoryRecorder",
    "describe_call",
    "NO_RESPONSE_STATUS",
    "MediaServicesClient",
    "MediaServicesClientFactory",
    "ADAPTIVE_STREAMING_PRESET",
    "ServiceBusConfig",
    "ServiceBusPublisher",
    "MessagePublishError",
    "get_publisher",
    "reset_publisher",
    "AssetContainerCopier",
    "CopyResult",
]
