# ============================================================================
# JOB NOTIFICATION EVENTS
# ============================================================================
# STATUS: Core model - Event Grid notifications as a tagged union
# PURPOSE: Parse Media Services job / output notifications into typed data
# CREATED: 19 OCT 2026
# EXPORTS: EventGridEvent, JobStateChangeData, JobOutputStateChangeData,
#          JobOutputProgressData, JobEventData, parse_event, EVENT_TYPES
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Notification Events

Event Grid delivers an envelope {id, topic, subject, eventType, eventTime,
data}. parse_event() dispatches on eventType to one parse function per
variant and returns one of:

    JobStateChangeData        kind="job_state_change"
    JobOutputStateChangeData  kind="job_output_state_change"
    JobOutputProgressData     kind="job_output_progress"

Unrecognized event types return None; they are not errors.

Subject:  transforms/<transform>/jobs/<job>
Topic:    /subscriptions/<id>/resourceGroups/<rg>/providers/Microsoft.Media/mediaservices/<account>
"""

import re
from datetime import datetime
from typing import Any, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from core.contracts import JobState
from core.models.job_output_status import JobOutputStatusRecord
from core.models.media import RETRY_MAY_RETRY

MEDIA_EVENT_PREFIX = "Microsoft.Media."

_JOB_NAME = re.compile(r".+/(?P<job_name>[^/]+)$")
_TRANSFORM_NAME = re.compile(r"transforms/(?P<transform_name>[^/]+)/jobs/", re.IGNORECASE)


# ============================================================================
# ENVELOPE
# ============================================================================

class EventGridEvent(BaseModel):
    """Event Grid schema envelope."""
    id: str
    topic: str = ""
    subject: str
    event_type: str = Field(..., alias="eventType")
    event_time: datetime = Field(..., alias="eventTime")
    data: Dict[str, Any] = Field(default_factory=dict)
    data_version: Optional[str] = Field(default=None, alias="dataVersion")

    model_config = {"populate_by_name": True}

    @property
    def job_name(self) -> str:
        match = _JOB_NAME.match(self.subject)
        return match.group("job_name") if match else self.subject

    @property
    def transform_name(self) -> Optional[str]:
        match = _TRANSFORM_NAME.search(self.subject)
        return match.group("transform_name") if match else None

    @property
    def instance_name(self) -> str:
        return self.topic.rstrip("/").rsplit("/", 1)[-1]


# ============================================================================
# VARIANTS
# ============================================================================

class _JobEventBase(BaseModel):
    event_id: str
    event_type: str
    event_time: datetime
    job_name: str
    transform_name: Optional[str] = None
    instance_name: str


class JobStateChangeData(_JobEventBase):
    kind: Literal["job_state_change"] = "job_state_change"
    state: JobState
    previous_state: Optional[JobState] = None


class JobOutputStateChangeData(_JobEventBase):
    kind: Literal["job_output_state_change"] = "job_output_state_change"
    output_asset_name: str
    output_state: JobState
    previous_state: Optional[JobState] = None
    has_retriable_error: bool = False
    progress: int = 0

    def to_status_record(self) -> JobOutputStatusRecord:
        """Normalized status record for the job output status store."""
        return JobOutputStatusRecord(
            id=self.event_id,
            job_name=self.job_name,
            output_asset_name=self.output_asset_name,
            job_output_state=self.output_state,
            event_time=self.event_time,
            instance_name=self.instance_name,
            transform_name=self.transform_name,
            has_retriable_error=self.has_retriable_error,
        )


class JobOutputProgressData(_JobEventBase):
    kind: Literal["job_output_progress"] = "job_output_progress"
    label: Optional[str] = None
    progress: int = 0


JobEventData = Union[JobStateChangeData, JobOutputStateChangeData, JobOutputProgressData]


# ============================================================================
# PARSERS
# ============================================================================

def _common(event: EventGridEvent) -> Dict[str, Any]:
    return {
        "event_id": event.id,
        "event_type": event.event_type,
        "event_time": event.event_time,
        "job_name": event.job_name,
        "transform_name": event.transform_name,
        "instance_name": event.instance_name,
    }


def _optional_state(value: Optional[str]) -> Optional[JobState]:
    return JobState(value) if value else None


def _parse_job_state_change(event: EventGridEvent) -> JobStateChangeData:
    return JobStateChangeData(
        **_common(event),
        state=JobState(event.data["state"]),
        previous_state=_optional_state(event.data.get("previousState")),
    )


def _parse_job_output_state_change(event: EventGridEvent) -> JobOutputStateChangeData:
    output = event.data.get("output") or {}
    error = output.get("error") or {}
    output_state = JobState(output["state"])
    return JobOutputStateChangeData(
        **_common(event),
        output_asset_name=output.get("assetName", ""),
        output_state=output_state,
        previous_state=_optional_state(event.data.get("previousState")),
        has_retriable_error=output_state == JobState.ERROR and error.get("retry") == RETRY_MAY_RETRY,
        progress=output.get("progress") or 0,
    )


def _parse_job_output_progress(event: EventGridEvent) -> JobOutputProgressData:
    return JobOutputProgressData(
        **_common(event),
        label=event.data.get("label"),
        progress=event.data.get("progress") or 0,
    )


_PARSERS: Dict[str, Callable[[EventGridEvent], JobEventData]] = {}
for _name in (
    "JobStateChange",
    "JobScheduled",
    "JobProcessing",
    "JobCanceling",
    "JobFinished",
    "JobCanceled",
    "JobErrored",
):
    _PARSERS[MEDIA_EVENT_PREFIX + _name] = _parse_job_state_change
for _name in (
    "JobOutputStateChange",
    "JobOutputScheduled",
    "JobOutputProcessing",
    "JobOutputCanceling",
    "JobOutputFinished",
    "JobOutputCanceled",
    "JobOutputErrored",
):
    _PARSERS[MEDIA_EVENT_PREFIX + _name] = _parse_job_output_state_change
_PARSERS[MEDIA_EVENT_PREFIX + "JobOutputProgress"] = _parse_job_output_progress

EVENT_TYPES = frozenset(_PARSERS)


def parse_event(envelope: Union[EventGridEvent, Dict[str, Any]]) -> Optional[JobEventData]:
    """
    Map an Event Grid envelope to its typed variant.

    Returns None for event types this core does not handle.

    Raises:
        pydantic.ValidationError / KeyError / ValueError: a recognized event
        with a malformed body
    """
    event = envelope if isinstance(envelope, EventGridEvent) else EventGridEvent.model_validate(envelope)
    parser = _PARSERS.get(event.event_type)
    if parser is None:
        return None
    return parser(event)


__all__ = [
    "EventGridEvent",
    "JobStateChangeData",
    "JobOutputStateChangeData",
    "JobOutputProgressData",
    "JobEventData",
    "EVENT_TYPES",
    "parse_event",
]
