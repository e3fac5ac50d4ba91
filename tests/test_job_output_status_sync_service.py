# ============================================================================
# JOB OUTPUT STATUS SYNC SERVICE TESTS
# ============================================================================
# STATUS: Tests - Missed notification compensation
# PURPOSE: Verify stale detection, list/get choice and idempotence
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Output Status Sync Service Tests

Covers:
1. Only stale, non-final jobs are refreshed
2. A second run with the same as_of writes nothing
3. A newly Finished job enqueues provisioning, again on the next run if
   the send failed
4. List vs per-job get threshold

Run with:
    pytest tests/test_job_output_status_sync_service.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.contracts import JobState, QueueName
from core.models import JobOutputStatusRecord
from services.job_output_status_sync_service import (
    JobOutputStatusSyncService,
    is_new_observation,
    latest_per_job,
    should_use_list,
)
from tests.fakes import FakeClientFactory, make_media_job, make_settings, make_status_repo

AS_OF = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _record(job_name, state, minutes_ago, instance="amsaccount1", transform="AdaptiveBitrate"):
    return JobOutputStatusRecord(
        job_name=job_name,
        output_asset_name=f"{job_name}-out",
        job_output_state=state,
        event_time=AS_OF - timedelta(minutes=minutes_ago),
        instance_name=instance,
        transform_name=transform,
    )


@pytest.fixture
def publisher():
    publisher = MagicMock()
    publisher.send_message = AsyncMock(return_value="msg-1")
    return publisher


@pytest.fixture
def factory():
    return FakeClientFactory()


@pytest.fixture
def service(factory, publisher):
    return JobOutputStatusSyncService(
        MagicMock(), make_settings(), factory, publisher, status_repo=make_status_repo()
    )


def _store(service, *records):
    for record in records:
        asyncio.run(service.status_repo.create(record))


# ============================================================================
# HELPERS
# ============================================================================

class TestHelpers:

    def test_should_use_list(self):
        assert not should_use_list(8, 50, 100)
        assert should_use_list(9, 50, 100)
        assert not should_use_list(16, 150, 100)
        assert should_use_list(17, 150, 100)

    def test_latest_per_job(self):
        records = [
            _record("a", JobState.QUEUED, 100),
            _record("a", JobState.PROCESSING, 90),
            _record("b", JobState.FINISHED, 80),
        ]
        latest = latest_per_job(records)
        assert latest["a"].job_output_state == JobState.PROCESSING
        assert latest["b"].job_output_state == JobState.FINISHED

    def test_same_state_not_newer_is_not_new(self):
        stored = _record("a", JobState.PROCESSING, 90)
        fetched = stored.model_copy(update={"id": "other"})
        assert not is_new_observation(fetched, stored)
        newer = stored.model_copy(update={"id": "x", "event_time": stored.event_time + timedelta(minutes=1)})
        assert is_new_observation(newer, stored)
        changed = stored.model_copy(update={"id": "y", "job_output_state": JobState.FINISHED})
        assert is_new_observation(changed, stored)


# ============================================================================
# SYNC
# ============================================================================

class TestSync:

    def test_refreshes_stale_job_and_enqueues_provisioning(self, service, factory, publisher):
        _store(service, _record("job-1", JobState.PROCESSING, 90))
        client = factory.get_client("amsaccount1")
        client.get_job.return_value = make_media_job(
            name="job-1", state=JobState.FINISHED, output_asset_name="job-1-out",
            last_modified=AS_OF - timedelta(minutes=30),
        )

        written = asyncio.run(service.sync_job_output_status(as_of=AS_OF))

        assert [(r.job_name, r.job_output_state) for r in written] == [("job-1", JobState.FINISHED)]
        client.get_job.assert_awaited_once_with("AdaptiveBitrate", "job-1")
        queue, request = publisher.send_message.await_args.args
        assert queue == QueueName.PROVISIONING_REQUESTS
        assert request.processed_asset_name == "job-1-out"

    def test_second_run_with_same_as_of_writes_nothing(self, service, factory, publisher):
        _store(service, _record("job-1", JobState.PROCESSING, 90))
        factory.get_client("amsaccount1").get_job.return_value = make_media_job(
            name="job-1", state=JobState.FINISHED, output_asset_name="job-1-out",
            last_modified=AS_OF - timedelta(minutes=30),
        )

        asyncio.run(service.sync_job_output_status(as_of=AS_OF))
        writes = service.status_repo.store.upserts
        second = asyncio.run(service.sync_job_output_status(as_of=AS_OF))

        assert second == []
        assert service.status_repo.store.upserts == writes
        assert publisher.send_message.await_count == 1

    def test_failed_provisioning_send_is_repeated_next_run(self, service, factory, publisher):
        _store(service, _record("job-1", JobState.PROCESSING, 90))
        factory.get_client("amsaccount1").get_job.return_value = make_media_job(
            name="job-1", state=JobState.FINISHED, output_asset_name="job-1-out",
            last_modified=AS_OF - timedelta(minutes=30),
        )
        publisher.send_message.side_effect = [RuntimeError("bus unavailable"), "msg-2"]

        with pytest.raises(RuntimeError):
            asyncio.run(service.sync_job_output_status(as_of=AS_OF))
        latest = asyncio.run(service.status_repo.get_latest("job-1", "job-1-out"))
        assert latest.job_output_state == JobState.PROCESSING

        written = asyncio.run(service.sync_job_output_status(as_of=AS_OF))

        assert [r.job_output_state for r in written] == [JobState.FINISHED]
        assert publisher.send_message.await_count == 2

    def test_unchanged_backend_state_is_not_written(self, service, factory, publisher):
        stored = _record("job-1", JobState.PROCESSING, 90)
        _store(service, stored)
        factory.get_client("amsaccount1").get_job.return_value = make_media_job(
            name="job-1", state=JobState.PROCESSING, output_asset_name="job-1-out",
            last_modified=stored.event_time,
        )

        assert asyncio.run(service.sync_job_output_status(as_of=AS_OF)) == []
        publisher.send_message.assert_not_awaited()

    def test_fresh_and_final_jobs_are_skipped(self, service, factory):
        _store(
            service,
            _record("fresh", JobState.PROCESSING, 10),
            _record("done", JobState.FINISHED, 90),
            _record("no-transform", JobState.PROCESSING, 90, transform=None),
        )

        assert asyncio.run(service.sync_job_output_status(as_of=AS_OF)) == []
        factory.get_client("amsaccount1").get_job.assert_not_awaited()
        factory.get_client("amsaccount1").list_jobs.assert_not_awaited()

    def test_missing_backend_job_is_skipped(self, service, factory):
        _store(service, _record("job-1", JobState.QUEUED, 90))

        assert asyncio.run(service.sync_job_output_status(as_of=AS_OF)) == []

    def test_many_stale_jobs_use_list(self, service, factory):
        names = [f"job-{i}" for i in range(9)]
        _store(service, *[_record(name, JobState.PROCESSING, 90) for name in names])
        client = factory.get_client("amsaccount1")
        client.list_jobs.return_value = [
            make_media_job(name=name, state=JobState.ERROR, output_asset_name=f"{name}-out",
                           last_modified=AS_OF - timedelta(minutes=20))
            for name in names
        ]

        written = asyncio.run(service.sync_job_output_status(as_of=AS_OF))

        assert len(written) == 9
        client.list_jobs.assert_awaited_once()
        client.get_job.assert_not_awaited()
        assert client.list_jobs.await_args.kwargs["created_after"] == AS_OF - timedelta(minutes=480)

    def test_instances_are_synced_independently(self, service, factory):
        _store(
            service,
            _record("job-1", JobState.PROCESSING, 90, instance="amsaccount1"),
            _record("job-2", JobState.PROCESSING, 90, instance="amsaccount2"),
        )
        for name, client in factory.clients.items():
            client.get_job.side_effect = lambda transform, job_name: make_media_job(
                name=job_name, state=JobState.CANCELED, output_asset_name=f"{job_name}-out",
                last_modified=AS_OF - timedelta(minutes=5),
            )

        written = asyncio.run(service.sync_job_output_status(as_of=AS_OF))

        assert sorted((r.job_name, r.instance_name) for r in written) == [
            ("job-1", "amsaccount1"),
            ("job-2", "amsaccount2"),
        ]
