# ============================================================================
# API RESPONSE MODELS
# ============================================================================
# STATUS: Function App - Response schemas
# PURPOSE: Pydantic V2 models for HTTP responses
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Response Models

Pydantic V2 models for the HTTP endpoints.
All models use V2 patterns: ConfigDict, model_validate, model_dump.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models import InstanceHealthRecord, JobOutputStatusRecord


class JobSubmitResponse(BaseModel):
    """Response after a job request was queued."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                "job_name": "job-0001",
                "submitted_at": "2026-10-19T10:30:00Z",
                "status": "queued",
            }
        }
    )

    message_id: str = Field(..., description="Service Bus message ID for tracking")
    job_name: str = Field(..., description="Job that will be scheduled")
    submitted_at: datetime = Field(..., description="Timestamp when the submission was received")
    status: str = Field(default="queued", description="'queued' = waiting for the scheduler")


class JobStatusResponse(BaseModel):
    """Status history of one job, oldest first."""

    job_name: str
    latest: Optional[JobOutputStatusRecord] = None
    history: List[JobOutputStatusRecord] = Field(default_factory=list)


class InstanceListResponse(BaseModel):
    instances: List[InstanceHealthRecord] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Instance not found",
                "details": "No instance named 'amsaccount9' is configured",
                "code": "NOT_FOUND",
            }
        }
    )

    error: str = Field(..., description="Error message")
    details: Optional[str] = Field(default=None, description="Additional details")
    code: Optional[str] = Field(default=None, description="Error code for programmatic handling")


__all__ = [
    "JobSubmitResponse",
    "JobStatusResponse",
    "InstanceListResponse",
    "ErrorResponse",
]
