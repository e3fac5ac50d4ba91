# ============================================================================
# INSTANCE HEALTH MODEL
# ============================================================================
# STATUS: Core model - Health record per backend instance
# PURPOSE: Current health state and operator enablement of one instance
# CREATED: 19 OCT 2026
# EXPORTS: InstanceHealthRecord
# DEPENDENCIES: pydantic
# ============================================================================
"""
Instance Health Model

Exactly one record per instance name. The health service is the only
writer of health_state; is_enabled is an operator override and is never
changed by re-evaluation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from core.contracts import InstanceHealthState, utc_now


class InstanceHealthRecord(BaseModel):
    """
    Health of one Media Services account.

    Maps to: encoding_ha.instance_health (partition_key=instance_name)
    """
    instance_name: str = Field(..., max_length=64, description="Media Services account name")
    health_state: InstanceHealthState = Field(default=InstanceHealthState.HEALTHY)
    is_enabled: bool = Field(default=True, description="Operator override, disabled instances are never selected")
    last_updated: datetime = Field(default_factory=utc_now)

    def is_selectable(self) -> bool:
        return self.is_enabled
