# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export core contracts and errors
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import InstanceHealthState, JobState, QueueName, utc_now
from core.errors import (
    EncodingHAError,
    ConfigurationError,
    NoAvailableInstanceError,
    SchedulingUnavailableError,
    ProvisioningError,
    MediaServicesApiError,
)

__all__ = [
    # Enums
    "InstanceHealthState",
    "JobState",
    "QueueName",
    "utc_now",
    # Errors
    "EncodingHAError",
    "ConfigurationError",
    "NoAvailableInstanceError",
    "SchedulingUnavailableError",
    "ProvisioningError",
    "MediaServicesApiError",
]
