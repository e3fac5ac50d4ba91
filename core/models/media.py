# ============================================================================
# MEDIA SERVICES RESOURCE MODELS
# ============================================================================
# STATUS: Core model - Backend resources as seen by the core
# PURPOSE: Typed views of ARM job, locator, content key and path payloads
# CREATED: 19 OCT 2026
# EXPORTS: MediaJob, JobOutput, StreamingLocator, ContentKey, StreamingPath,
#          parse_arm_datetime
# DEPENDENCIES: pydantic
# ============================================================================
"""
Media Services Resource Models

Only the fields the core reads are modelled. Each model has a from_api()
constructor taking the ARM JSON body and, where the core writes the
resource, a to_api() producing the request body.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.contracts import JobState

RETRY_MAY_RETRY = "MayRetry"

_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_arm_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ARM timestamp (up to 7 fractional digits, 'Z' suffix) as aware UTC."""
    if not value:
        return None
    text = _FRACTION.sub(r"\1", value.replace("Z", "+00:00"))
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ============================================================================
# JOBS
# ============================================================================

class JobOutput(BaseModel):
    asset_name: str
    state: JobState = JobState.QUEUED
    progress: int = 0
    error_retry: Optional[str] = Field(default=None, description="'MayRetry' or 'DoNotRetry'")
    error_message: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "JobOutput":
        error = payload.get("error") or {}
        return cls(
            asset_name=payload.get("assetName", ""),
            state=JobState(payload.get("state", JobState.QUEUED.value)),
            progress=payload.get("progress") or 0,
            error_retry=error.get("retry"),
            error_message=error.get("message"),
        )


class MediaJob(BaseModel):
    """A job as returned by the Media Services API."""
    name: str
    id: str
    transform_name: str
    state: JobState
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    outputs: List[JobOutput] = Field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "MediaJob":
        props = payload.get("properties", {})
        resource_id = payload.get("id", "")
        # .../transforms/<transform>/jobs/<job>
        segments = resource_id.split("/")
        transform_name = ""
        if "transforms" in segments:
            transform_name = segments[segments.index("transforms") + 1]
        return cls(
            name=payload["name"],
            id=resource_id,
            transform_name=transform_name,
            state=JobState(props.get("state", JobState.QUEUED.value)),
            created=parse_arm_datetime(props.get("created")),
            last_modified=parse_arm_datetime(props.get("lastModified")),
            outputs=[JobOutput.from_api(o) for o in props.get("outputs", [])],
        )

    def output_for(self, asset_name: str) -> Optional[JobOutput]:
        for output in self.outputs:
            if output.asset_name.lower() == asset_name.lower():
                return output
        return None

    def output_state(self, asset_name: str) -> JobState:
        """State of the output writing to asset_name, falling back to the job state."""
        output = self.output_for(asset_name)
        return output.state if output else self.state

    def has_retriable_error(self, asset_name: str) -> bool:
        """Job and output both failed and the backend marked the output safe to retry."""
        if self.state != JobState.ERROR:
            return False
        output = self.output_for(asset_name)
        return (
            output is not None
            and output.state == JobState.ERROR
            and output.error_retry == RETRY_MAY_RETRY
        )


# ============================================================================
# STREAMING
# ============================================================================

class ContentKey(BaseModel):
    id: str
    type: str = ""
    label_reference_in_streaming_policy: Optional[str] = None
    value: Optional[str] = None
    policy_name: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ContentKey":
        return cls(
            id=payload["id"],
            type=payload.get("type", ""),
            label_reference_in_streaming_policy=payload.get("labelReferenceInStreamingPolicy"),
            value=payload.get("value"),
            policy_name=payload.get("policyName"),
        )

    def to_api(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"id": self.id}
        if self.label_reference_in_streaming_policy:
            body["labelReferenceInStreamingPolicy"] = self.label_reference_in_streaming_policy
        if self.value:
            body["value"] = self.value
        return body


class StreamingLocator(BaseModel):
    name: str
    asset_name: str
    streaming_policy_name: str
    streaming_locator_id: Optional[str] = None
    default_content_key_policy_name: Optional[str] = None
    content_keys: List[ContentKey] = Field(default_factory=list)
    instance_name: Optional[str] = Field(default=None, description="Instance the locator lives on")

    @classmethod
    def from_api(cls, payload: Dict[str, Any], instance_name: Optional[str] = None) -> "StreamingLocator":
        props = payload.get("properties", {})
        return cls(
            name=payload["name"],
            asset_name=props.get("assetName", ""),
            streaming_policy_name=props.get("streamingPolicyName", ""),
            streaming_locator_id=props.get("streamingLocatorId"),
            default_content_key_policy_name=props.get("defaultContentKeyPolicyName"),
            content_keys=[ContentKey.from_api(k) for k in props.get("contentKeys", [])],
            instance_name=instance_name,
        )

    def to_api(self) -> Dict[str, Any]:
        props: Dict[str, Any] = {
            "assetName": self.asset_name,
            "streamingPolicyName": self.streaming_policy_name,
        }
        if self.streaming_locator_id:
            props["streamingLocatorId"] = self.streaming_locator_id
        if self.default_content_key_policy_name:
            props["defaultContentKeyPolicyName"] = self.default_content_key_policy_name
        if self.content_keys:
            props["contentKeys"] = [k.to_api() for k in self.content_keys]
        return {"properties": props}

    def replica(self, instance_name: str, content_keys: Optional[List[ContentKey]] = None) -> "StreamingLocator":
        """Same locator (name, id, policy) to be created on another instance."""
        return self.model_copy(
            update={
                "instance_name": instance_name,
                "content_keys": list(content_keys) if content_keys is not None else list(self.content_keys),
            }
        )


class StreamingPath(BaseModel):
    streaming_protocol: str
    encryption_scheme: str = ""
    paths: List[str] = Field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "StreamingPath":
        return cls(
            streaming_protocol=payload.get("streamingProtocol", ""),
            encryption_scheme=payload.get("encryptionScheme", ""),
            paths=payload.get("paths", []),
        )


__all__ = [
    "RETRY_MAY_RETRY",
    "parse_arm_datetime",
    "JobOutput",
    "MediaJob",
    "ContentKey",
    "StreamingLocator",
    "StreamingPath",
]
