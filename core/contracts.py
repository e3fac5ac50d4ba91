# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums shared by every component
# PURPOSE: Health states, backend job states, queue names
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: utc_now, InstanceHealthState, JobState, QueueName
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the encoding high-availability core.

These enums cross every boundary:
- SQL (PostgreSQL payload columns)
- Queue (Azure Service Bus message bodies)
- Backend (Azure Media Services job / output states)
"""

from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    """Timezone-aware current UTC time; every stored timestamp is aware."""
    return datetime.now(timezone.utc)


# ============================================================================
# STATUS ENUMS
# ============================================================================

class InstanceHealthState(str, Enum):
    """
    Derived health classification of one backend instance.

    Order matters for selection: HEALTHY is preferred over DEGRADED,
    DEGRADED over UNHEALTHY.
    """
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"

    @property
    def rank(self) -> int:
        """Selection rank, lower is better."""
        return _HEALTH_RANK[self]


_HEALTH_RANK = {
    InstanceHealthState.HEALTHY: 0,
    InstanceHealthState.DEGRADED: 1,
    InstanceHealthState.UNHEALTHY: 2,
}


class JobState(str, Enum):
    """
    Job / job output lifecycle states, mirroring the backend.

    State transitions:
        Queued -> Scheduled -> Processing -> Finished
                                          -> Error
                            -> Canceling -> Canceled
    """
    QUEUED = "Queued"
    SCHEDULED = "Scheduled"
    PROCESSING = "Processing"
    FINISHED = "Finished"
    ERROR = "Error"
    CANCELED = "Canceled"
    CANCELING = "Canceling"

    def is_terminal(self) -> bool:
        """Check if this is a final state (no further transitions)."""
        return self in (JobState.FINISHED, JobState.ERROR, JobState.CANCELED)


class QueueName(str, Enum):
    """Service Bus queues used between components."""
    JOB_REQUESTS = "job-requests"
    JOB_VERIFICATION_REQUESTS = "job-verification-requests"
    PROVISIONING_REQUESTS = "provisioning-requests"


__all__ = [
    "utc_now",
    "InstanceHealthState",
    "JobState",
    "QueueName",
]
