# ============================================================================
# CALL HISTORY MODEL
# ============================================================================
# STATUS: Core model - One record per outbound backend call
# PURPOSE: Rolling signal for instance health
# CREATED: 19 OCT 2026
# EXPORTS: CallHistoryRecord
# DEPENDENCIES: pydantic
# ============================================================================
"""Call history record, partitioned by instance name."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from core.contracts import utc_now


class CallHistoryRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    instance_name: str = Field(..., max_length=64)
    http_status: int = Field(..., description="HTTP status, or 599 when no response was received")
    call_info: str = Field(..., description="'<METHOD> <path after the account name>'")
    event_time: datetime = Field(default_factory=utc_now)

    def is_success(self) -> bool:
        """Server-side failures count against the instance; 4xx does not."""
        return self.http_status < 500
