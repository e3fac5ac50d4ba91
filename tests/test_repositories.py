# ============================================================================
# REPOSITORY TESTS
# ============================================================================
# STATUS: Tests - Keyed store repositories
# PURPOSE: Verify latest/window queries and operator overrides
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repository Tests

Repositories run on an in-memory keyed store (tests/fakes.py).

Run with:
    pytest tests/test_repositories.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone

from core.contracts import InstanceHealthState, JobState
from core.models import (
    CallHistoryRecord,
    InstanceHealthRecord,
    JobOutputStatusRecord,
    ProvisioningCompletedEvent,
)
from tests.fakes import make_call_history_repo, make_event_repo, make_health_repo, make_status_repo

T0 = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


def _status(job_name, state, minutes, instance="amsaccount1", output="out-1", **kwargs):
    return JobOutputStatusRecord(
        job_name=job_name,
        output_asset_name=output,
        job_output_state=state,
        event_time=T0 + timedelta(minutes=minutes),
        instance_name=instance,
        **kwargs,
    )


# ============================================================================
# JOB OUTPUT STATUS
# ============================================================================

class TestJobOutputStatusRepository:

    def test_round_trip(self):
        repo = make_status_repo()
        record = _status("job-1", JobState.ERROR, 0, transform_name="AdaptiveBitrate", has_retriable_error=True)

        asyncio.run(repo.create(record))
        loaded = asyncio.run(repo.get("job-1", record.id))

        assert loaded == record

    def test_latest_is_greatest_event_time(self):
        repo = make_status_repo()
        for state, minutes in [(JobState.PROCESSING, 5), (JobState.FINISHED, 10), (JobState.QUEUED, 0)]:
            asyncio.run(repo.create(_status("job-1", state, minutes)))

        latest = asyncio.run(repo.get_latest("job-1", "out-1"))

        assert latest.job_output_state == JobState.FINISHED

    def test_latest_filters_by_output(self):
        repo = make_status_repo()
        asyncio.run(repo.create(_status("job-1", JobState.FINISHED, 10, output="other")))
        asyncio.run(repo.create(_status("job-1", JobState.PROCESSING, 5)))

        assert asyncio.run(repo.get_latest("job-1", "out-1")).job_output_state == JobState.PROCESSING
        assert asyncio.run(repo.get_latest("job-2", "out-1")) is None

    def test_same_event_id_is_idempotent(self):
        repo = make_status_repo()
        record = _status("job-1", JobState.PROCESSING, 0)
        asyncio.run(repo.create(record))
        asyncio.run(repo.create(record))

        assert len(asyncio.run(repo.list_for_job("job-1"))) == 1

    def test_list_by_instance_window(self):
        repo = make_status_repo()
        asyncio.run(repo.create(_status("job-1", JobState.QUEUED, 0)))
        asyncio.run(repo.create(_status("job-2", JobState.QUEUED, 30)))
        asyncio.run(repo.create(_status("job-3", JobState.QUEUED, 30, instance="amsaccount2")))
        asyncio.run(repo.create(_status("job-4", JobState.QUEUED, 90)))

        records = asyncio.run(repo.list_by_instance(
            "amsaccount1", since=T0 + timedelta(minutes=10), until=T0 + timedelta(minutes=60)
        ))

        assert [r.job_name for r in records] == ["job-2"]


# ============================================================================
# INSTANCE HEALTH
# ============================================================================

class TestInstanceHealthRepository:

    def test_list_sorted_by_name(self):
        repo = make_health_repo()
        for name in ("amsaccount3", "amsaccount1", "amsaccount2"):
            asyncio.run(repo.create_or_update(InstanceHealthRecord(instance_name=name)))

        names = [r.instance_name for r in asyncio.run(repo.list())]

        assert names == ["amsaccount1", "amsaccount2", "amsaccount3"]

    def test_set_enabled_keeps_health_state(self):
        repo = make_health_repo()
        asyncio.run(repo.create_or_update(
            InstanceHealthRecord(instance_name="amsaccount1", health_state=InstanceHealthState.DEGRADED)
        ))

        record = asyncio.run(repo.set_enabled("amsaccount1", False))

        assert record.is_enabled is False
        assert record.health_state == InstanceHealthState.DEGRADED
        assert asyncio.run(repo.get("amsaccount1")).is_enabled is False

    def test_set_enabled_creates_missing_record(self):
        repo = make_health_repo()
        record = asyncio.run(repo.set_enabled("amsaccount9", False))
        assert record.health_state == InstanceHealthState.HEALTHY
        assert asyncio.run(repo.get("amsaccount9")) is not None


# ============================================================================
# CALL HISTORY AND PROVISIONING EVENTS
# ============================================================================

class TestOtherRepositories:

    def test_call_history_by_instance(self):
        repo = make_call_history_repo()
        asyncio.run(repo.create(CallHistoryRecord(
            instance_name="amsaccount1", http_status=500, call_info="GET assets/a", event_time=T0
        )))
        asyncio.run(repo.create(CallHistoryRecord(
            instance_name="amsaccount2", http_status=200, call_info="GET assets/a", event_time=T0
        )))

        records = asyncio.run(repo.list_by_instance("amsaccount1", since=T0 - timedelta(hours=1)))

        assert len(records) == 1
        assert not records[0].is_success()

    def test_provisioning_event_by_asset(self):
        repo = make_event_repo()
        event = ProvisioningCompletedEvent(asset_name="out-1", instance_names=["amsaccount1"])
        event.mark_completed()
        asyncio.run(repo.create(event))

        events = asyncio.run(repo.list_for_asset("out-1"))

        assert [e.id for e in events] == [event.id]
        assert asyncio.run(repo.get("out-1", event.id)).instance_names == ["amsaccount1"]
