# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Pydantic models for stored records, queue messages, backend resources
and inbound notifications.
"""

from core.models.instance_health import InstanceHealthRecord
from core.models.job_output_status import JobOutputStatusRecord
from core.models.call_history import CallHistoryRecord
from core.models.job_request import JobRequest, JobVerificationRequest
from core.models.media import (
    MediaJob,
    JobOutput,
    StreamingLocator,
    ContentKey,
    StreamingPath,
)
from core.models.provisioning import (
    ProvisioningRequest,
    ProvisioningCompletedEvent,
    streaming_locator_name_for,
)
from core.models.events import (
    EventGridEvent,
    JobStateChangeData,
    JobOutputStateChangeData,
    JobOutputProgressData,
    JobEventData,
    parse_event,
)

__all__ = [
    # Stored records
    "InstanceHealthRecord",
    "JobOutputStatusRecord",
    "CallHistoryRecord",
    # Queue messages
    "JobRequest",
    "JobVerificationRequest",
    "ProvisioningRequest",
    "ProvisioningCompletedEvent",
    "streaming_locator_name_for",
    # Backend resources
    "MediaJob",
    "JobOutput",
    "StreamingLocator",
    "ContentKey",
    "StreamingPath",
    # Notifications
    "EventGridEvent",
    "JobStateChangeData",
    "JobOutputStateChangeData",
    "JobOutputProgressData",
    "JobEventData",
    "parse_event",
]
