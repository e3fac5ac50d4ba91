# ============================================================================
# JOB REQUEST MODELS
# ============================================================================
# STATUS: Core model - Queue messages for submission and verification
# PURPOSE: Payloads of the job-requests and job-verification-requests queues
# CREATED: 19 OCT 2026
# EXPORTS: JobRequest, JobVerificationRequest
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Request Models

JobRequest is the work order consumed from the job-requests queue.
JobVerificationRequest is scheduled by the scheduler with a visibility
delay and carries the original JobRequest so that the job can be
resubmitted to another instance without any other lookup.

Serialization via model_dump_json() / model_validate_json().
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from core.contracts import utc_now


class JobRequest(BaseModel):
    """
    Work order for one encoding job.

    The input is either an existing asset (input_asset_name) or a list of
    HTTP(S) source URLs (input_urls), never both.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_name: str = Field(..., max_length=256)
    output_asset_name: str = Field(..., max_length=256)
    input_asset_name: Optional[str] = Field(default=None, max_length=256)
    input_urls: List[str] = Field(default_factory=list)
    transform_name: Optional[str] = Field(
        default=None,
        description="Transform to submit against; defaults to the configured transform",
    )

    @model_validator(mode="after")
    def _check_input(self) -> "JobRequest":
        if bool(self.input_asset_name) == bool(self.input_urls):
            raise ValueError("exactly one of input_asset_name or input_urls is required")
        return self


class JobVerificationRequest(BaseModel):
    """
    Delayed check that a submitted job reached a final state.

    retry_count starts at 0 and grows by one on every resubmission.
    submitted_at is the creation time of the job this request tracks; a
    backend job with the same name created later belongs to a newer request.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str = Field(..., description="Backend resource id of the submitted job")
    job_name: str = Field(..., max_length=256)
    output_asset_name: str = Field(..., max_length=256)
    instance_name: str = Field(..., max_length=64)
    original_job_request: JobRequest
    retry_count: int = Field(default=0, ge=0)
    submitted_at: datetime = Field(default_factory=utc_now)
