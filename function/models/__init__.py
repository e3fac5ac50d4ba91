# ============================================================================
# FUNCTION APP MODELS
# ============================================================================
# STATUS: Function App - Pydantic models for HTTP endpoints
# PURPOSE: Response models for function app endpoints
# CREATED: 19 OCT 2026
# ============================================================================
"""
Function App Models

Request bodies are the core models (JobRequest); responses live here.
"""

from function.models.responses import (
    JobSubmitResponse,
    JobStatusResponse,
    InstanceListResponse,
    ErrorResponse,
)

__all__ = [
    "JobSubmitResponse",
    "JobStatusResponse",
    "InstanceListResponse",
    "ErrorResponse",
]
