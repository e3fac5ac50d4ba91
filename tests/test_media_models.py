# ============================================================================
# MEDIA MODEL TESTS
# ============================================================================
# STATUS: Tests - ARM payload mapping
# PURPOSE: Verify jobs, locators and timestamps parsed from the backend
# CREATED: 19 OCT 2026
# ============================================================================
"""
Media Model Tests

Run with:
    pytest tests/test_media_models.py -v
"""

from datetime import timezone

from core.contracts import JobState
from core.models import ContentKey, JobOutputStatusRecord, MediaJob, StreamingLocator
from core.models.media import parse_arm_datetime


# ============================================================================
# TIMESTAMPS
# ============================================================================

class TestParseArmDatetime:

    def test_seven_fractional_digits(self):
        parsed = parse_arm_datetime("2026-10-19T08:15:30.1234567Z")
        assert parsed.tzinfo is not None
        assert parsed.microsecond == 123456
        assert parsed.utcoffset() == timezone.utc.utcoffset(None)

    def test_none_and_empty(self):
        assert parse_arm_datetime(None) is None
        assert parse_arm_datetime("") is None


# ============================================================================
# JOBS
# ============================================================================

def _job_payload(state="Error", output_state="Error", retry="MayRetry"):
    return {
        "name": "job-7",
        "id": "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Media/mediaServices/amsaccount1/transforms/AdaptiveBitrate/jobs/job-7",
        "properties": {
            "state": state,
            "created": "2026-10-19T08:00:00.0000000Z",
            "lastModified": "2026-10-19T08:20:00.5000000Z",
            "outputs": [
                {"assetName": "out-7", "state": output_state, "error": {"retry": retry, "message": "boom"}},
            ],
        },
    }


class TestMediaJob:

    def test_from_api(self):
        job = MediaJob.from_api(_job_payload())
        assert job.name == "job-7"
        assert job.transform_name == "AdaptiveBitrate"
        assert job.state == JobState.ERROR
        assert job.created.hour == 8
        assert job.outputs[0].error_message == "boom"

    def test_retriable_error_requires_job_and_output_error(self):
        assert MediaJob.from_api(_job_payload()).has_retriable_error("out-7")
        assert not MediaJob.from_api(_job_payload(retry="DoNotRetry")).has_retriable_error("out-7")
        assert not MediaJob.from_api(_job_payload(state="Processing")).has_retriable_error("out-7")

    def test_output_lookup_is_case_insensitive(self):
        job = MediaJob.from_api(_job_payload(state="Processing", output_state="Finished"))
        assert job.output_state("OUT-7") == JobState.FINISHED

    def test_unknown_output_falls_back_to_job_state(self):
        job = MediaJob.from_api(_job_payload(state="Processing", output_state="Finished"))
        assert job.output_state("other") == JobState.PROCESSING

    def test_status_record_from_job(self):
        job = MediaJob.from_api(_job_payload())
        record = JobOutputStatusRecord.from_media_job(job, "out-7", "amsaccount1")
        assert record.job_output_state == JobState.ERROR
        assert record.has_retriable_error is True
        assert record.event_time == job.last_modified
        assert record.transform_name == "AdaptiveBitrate"


# ============================================================================
# LOCATORS
# ============================================================================

class TestStreamingLocator:

    def test_from_api_and_to_api(self):
        payload = {
            "name": "streaming-out-7",
            "properties": {
                "assetName": "out-7",
                "streamingPolicyName": "Predefined_ClearKey",
                "streamingLocatorId": "abc",
                "defaultContentKeyPolicyName": "clearkey-policy",
                "contentKeys": [{"id": "key-1", "type": "EnvelopeEncryption"}],
            },
        }
        locator = StreamingLocator.from_api(payload, instance_name="amsaccount1")
        assert locator.instance_name == "amsaccount1"
        assert locator.content_keys[0].id == "key-1"

        body = locator.to_api()["properties"]
        assert body["streamingLocatorId"] == "abc"
        assert body["contentKeys"] == [{"id": "key-1"}]

    def test_replica_keeps_identity(self):
        locator = StreamingLocator(
            name="streaming-out-7",
            asset_name="out-7",
            streaming_policy_name="Predefined_ClearKey",
            streaming_locator_id="abc",
            content_keys=[ContentKey(id="key-1", value="c2VjcmV0")],
            instance_name="amsaccount1",
        )
        replica = locator.replica("amsaccount2")
        assert replica.instance_name == "amsaccount2"
        assert replica.streaming_locator_id == "abc"
        assert replica.content_keys[0].value == "c2VjcmV0"
        assert locator.instance_name == "amsaccount1"

        assert locator.replica("amsaccount3", content_keys=[]).content_keys == []
