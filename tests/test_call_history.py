# ============================================================================
# CALL-HISTORY RECORDER TESTS
# ============================================================================
# STATUS: Tests - Backend call recording
# PURPOSE: Verify outcome recording, client invalidation and failure isolation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Call-History Recorder Tests

Covers:
1. Status code recorded per call with "<METHOD> <operation>" info
2. 5xx and transport failures invalidate the cached client
3. Transport failures recorded as 599 and re-raised
4. A failing history write never fails the call

Run with:
    pytest tests/test_call_history.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from infrastructure.call_history import NO_RESPONSE_STATUS, CallHistoryRecorder, describe_call
from tests.fakes import make_call_history_repo

PATH = (
    "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Media/"
    "mediaServices/amsaccount1/transforms/AdaptiveBitrate/jobs/job-1?api-version=2022-08-01"
)


def _response(status_code):
    return httpx.Response(status_code, request=httpx.Request("GET", "https://management.azure.com" + PATH))


@pytest.fixture
def repo():
    return make_call_history_repo()


@pytest.fixture
def on_failure():
    return MagicMock()


@pytest.fixture
def recorder(repo, on_failure):
    return CallHistoryRecorder(repo, on_failure=on_failure, delay_seconds=0)


def _records(repo):
    return asyncio.run(repo.list_by_instance("amsaccount1", since=datetime(2000, 1, 1, tzinfo=timezone.utc)))


# ============================================================================
# DESCRIBE
# ============================================================================

class TestDescribeCall:

    def test_strips_account_prefix_and_query(self):
        account, info = describe_call("get", PATH)
        assert account == "amsaccount1"
        assert info == "GET transforms/AdaptiveBitrate/jobs/job-1"

    def test_account_level_path(self):
        _, info = describe_call("POST", "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Media/mediaServices/a")
        assert info == "POST"


# ============================================================================
# TRACK
# ============================================================================

class TestTrack:

    def test_records_success(self, recorder, repo, on_failure):
        response = asyncio.run(recorder.track("amsaccount1", "GET", PATH, AsyncMock(return_value=_response(200))))

        assert response.status_code == 200
        records = _records(repo)
        assert [(r.http_status, r.call_info) for r in records] == [
            (200, "GET transforms/AdaptiveBitrate/jobs/job-1")
        ]
        on_failure.assert_not_called()

    def test_client_error_is_recorded_without_invalidation(self, recorder, repo, on_failure):
        asyncio.run(recorder.track("amsaccount1", "GET", PATH, AsyncMock(return_value=_response(404))))

        assert _records(repo)[0].http_status == 404
        assert _records(repo)[0].is_success()
        on_failure.assert_not_called()

    def test_server_error_invalidates_client(self, recorder, repo, on_failure):
        response = asyncio.run(recorder.track("amsaccount1", "PUT", PATH, AsyncMock(return_value=_response(503))))

        assert response.status_code == 503
        on_failure.assert_called_once_with("amsaccount1")
        assert not _records(repo)[0].is_success()

    def test_transport_error_recorded_and_reraised(self, recorder, repo, on_failure):
        send = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))

        with pytest.raises(httpx.ConnectTimeout):
            asyncio.run(recorder.track("amsaccount1", "GET", PATH, send))

        assert _records(repo)[0].http_status == NO_RESPONSE_STATUS
        on_failure.assert_called_once_with("amsaccount1")

    def test_history_write_failure_does_not_fail_call(self, on_failure):
        repo = MagicMock()
        repo.create = AsyncMock(side_effect=RuntimeError("database down"))
        recorder = CallHistoryRecorder(repo, on_failure=on_failure, attempts=3, delay_seconds=0)

        response = asyncio.run(recorder.track("amsaccount1", "GET", PATH, AsyncMock(return_value=_response(200))))

        assert response.status_code == 200
        assert repo.create.await_count == 3

    def test_requires_repository(self):
        with pytest.raises(ValueError):
            CallHistoryRecorder(None)
