# ============================================================================
# EVENT PARSER TESTS
# ============================================================================
# STATUS: Tests - Event Grid parsing
# PURPOSE: Verify mapping of Media Services events to typed variants
# CREATED: 19 OCT 2026
# ============================================================================
"""
Event Parser Tests

Covers:
1. Job state change variants
2. Job output state change variants, retriable error detection
3. Progress events
4. Unknown event types return None
5. Job, transform and instance names from subject/topic

Run with:
    pytest tests/test_events.py -v
"""

import pytest

from core.contracts import JobState
from core.models import (
    JobOutputProgressData,
    JobOutputStateChangeData,
    JobStateChangeData,
    parse_event,
)
from core.models.events import EVENT_TYPES

TOPIC = "/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Media/mediaservices/amsaccount2"
SUBJECT = "transforms/AdaptiveBitrate/jobs/job-42"


def _envelope(event_type, data, event_id="evt-1"):
    return {
        "id": event_id,
        "topic": TOPIC,
        "subject": SUBJECT,
        "eventType": event_type,
        "eventTime": "2026-10-19T10:00:00.123456Z",
        "dataVersion": "1.0",
        "data": data,
    }


class TestJobStateChange:

    @pytest.mark.parametrize("suffix", ["JobStateChange", "JobFinished", "JobErrored", "JobCanceled"])
    def test_job_variants(self, suffix):
        event = parse_event(_envelope(
            f"Microsoft.Media.{suffix}", {"state": "Finished", "previousState": "Processing"}
        ))
        assert isinstance(event, JobStateChangeData)
        assert event.kind == "job_state_change"
        assert event.state == JobState.FINISHED
        assert event.previous_state == JobState.PROCESSING

    def test_names_from_subject_and_topic(self):
        event = parse_event(_envelope("Microsoft.Media.JobScheduled", {"state": "Scheduled"}))
        assert event.job_name == "job-42"
        assert event.transform_name == "AdaptiveBitrate"
        assert event.instance_name == "amsaccount2"


class TestJobOutputStateChange:

    def test_finished_output(self):
        event = parse_event(_envelope(
            "Microsoft.Media.JobOutputFinished",
            {"previousState": "Processing", "output": {"assetName": "out-42", "state": "Finished", "progress": 100}},
        ))
        assert isinstance(event, JobOutputStateChangeData)
        assert event.output_asset_name == "out-42"
        assert event.output_state == JobState.FINISHED
        assert event.progress == 100
        assert event.has_retriable_error is False

    def test_retriable_error(self):
        event = parse_event(_envelope(
            "Microsoft.Media.JobOutputErrored",
            {"output": {"assetName": "out-42", "state": "Error", "error": {"retry": "MayRetry"}}},
        ))
        assert event.has_retriable_error is True

    def test_non_retriable_error(self):
        event = parse_event(_envelope(
            "Microsoft.Media.JobOutputErrored",
            {"output": {"assetName": "out-42", "state": "Error", "error": {"retry": "DoNotRetry"}}},
        ))
        assert event.has_retriable_error is False

    def test_to_status_record_keeps_event_identity(self):
        event = parse_event(_envelope(
            "Microsoft.Media.JobOutputStateChange",
            {"output": {"assetName": "out-42", "state": "Processing"}},
            event_id="evt-77",
        ))
        record = event.to_status_record()
        assert record.id == "evt-77"
        assert record.job_name == "job-42"
        assert record.instance_name == "amsaccount2"
        assert record.transform_name == "AdaptiveBitrate"
        assert record.job_output_state == JobState.PROCESSING
        assert record.event_time.tzinfo is not None


class TestOtherEvents:

    def test_progress(self):
        event = parse_event(_envelope("Microsoft.Media.JobOutputProgress", {"label": "out", "progress": 40}))
        assert isinstance(event, JobOutputProgressData)
        assert event.progress == 40

    def test_unknown_type_is_ignored(self):
        assert parse_event(_envelope("Microsoft.Media.LiveEventStarted", {})) is None

    def test_all_media_job_types_are_recognized(self):
        assert len(EVENT_TYPES) == 15
        assert all(t.startswith("Microsoft.Media.Job") for t in EVENT_TYPES)
