# ============================================================================
# JOB OUTPUT STATUS MODEL
# ============================================================================
# STATUS: Core model - Append-only job output state history
# PURPOSE: One record per observed state change of a job output
# CREATED: 19 OCT 2026
# EXPORTS: JobOutputStatusRecord
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Output Status Model

Records are written by the Event Grid path, the scheduler (initial record),
the verification service (live checks) and the sync service. They are never
updated after creation. The latest record for a job+output is the one with
the greatest event_time.

Keyed store derivation:
    partition_key = job_name
    row_key       = id
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from core.contracts import JobState, utc_now
from core.models.media import MediaJob


class JobOutputStatusRecord(BaseModel):
    """
    State of one job output at one point in time.

    Maps to: encoding_ha.job_output_status
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Event id")
    job_name: str = Field(..., max_length=256)
    output_asset_name: str = Field(..., max_length=256)
    job_output_state: JobState
    event_time: datetime
    instance_name: str = Field(..., max_length=64)
    transform_name: Optional[str] = Field(
        default=None,
        description="From the backend job, or from the subject of a notification",
    )
    has_retriable_error: bool = Field(default=False)

    @classmethod
    def from_media_job(
        cls,
        job: MediaJob,
        output_asset_name: str,
        instance_name: str,
    ) -> "JobOutputStatusRecord":
        """Record of the backend's current view of a job output."""
        return cls(
            job_name=job.name,
            output_asset_name=output_asset_name,
            job_output_state=job.output_state(output_asset_name),
            event_time=job.last_modified or job.created or utc_now(),
            instance_name=instance_name,
            transform_name=job.transform_name or None,
            has_retriable_error=job.has_retriable_error(output_asset_name),
        )

    @property
    def partition_key(self) -> str:
        return self.job_name

    @property
    def row_key(self) -> str:
        return self.id

    def same_observation(self, other: "JobOutputStatusRecord") -> bool:
        """True when both records describe the same state at the same time."""
        return (
            self.job_name == other.job_name
            and self.output_asset_name == other.output_asset_name
            and self.job_output_state == other.job_output_state
            and self.event_time == other.event_time
            and self.has_retriable_error == other.has_retriable_error
        )
