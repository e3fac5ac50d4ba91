# ============================================================================
# CALL-HISTORY RECORDER
# ============================================================================
# STATUS: Infrastructure - Outcome of every backend call
# PURPOSE: Record status per call, invalidate cached clients on failure
# CREATED: 19 OCT 2026
# ============================================================================
"""
Call-History Recorder

Every Media Services HTTP call goes through CallHistoryRecorder.track():

    response = await recorder.track(instance_name, "GET", path, send)

- 5xx responses and transport failures (timeouts, connection errors)
  call the invalidation hook, which drops the cached client for that
  instance so the next call re-authenticates.
- A CallHistoryRecord is written with bounded retry (3 attempts, 1 s
  apart). Failing to write it is logged and dropped; it never fails or
  changes the outcome of the call being described.

Transport failures are recorded with status 599 (no response received).
"""

import logging
from typing import Awaitable, Callable, Optional, Tuple

import httpx

from core.models import CallHistoryRecord
from core.retry import best_effort, DEFAULT_ATTEMPTS, DEFAULT_DELAY_SECONDS

logger = logging.getLogger(__name__)

NO_RESPONSE_STATUS = 599


def describe_call(method: str, path: str) -> Tuple[str, str]:
    """
    Split an ARM path into (account name, call info).

    /subscriptions/<s>/resourceGroups/<rg>/providers/Microsoft.Media/mediaServices/<account>/assets/<a>
        -> ("<account>", "GET assets/<a>")
    """
    segments = [s for s in path.split("?")[0].split("/") if s]
    lowered = [s.lower() for s in segments]
    account_name = ""
    operation = ""
    if "mediaservices" in lowered:
        index = lowered.index("mediaservices")
        if len(segments) > index + 1:
            account_name = segments[index + 1]
        operation = "/".join(segments[index + 2:])
    return account_name, f"{method.upper()} {operation}".strip()


class CallHistoryRecorder:
    """Wraps backend calls, recording outcomes keyed by instance."""

    def __init__(
        self,
        repository,
        on_failure: Optional[Callable[[str], None]] = None,
        attempts: int = DEFAULT_ATTEMPTS,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
    ):
        if repository is None:
            raise ValueError("CallHistoryRecorder requires a call history repository")
        self.repository = repository
        self.on_failure = on_failure
        self.attempts = attempts
        self.delay_seconds = delay_seconds

    async def record(self, instance_name: str, call_info: str, http_status: int) -> Optional[CallHistoryRecord]:
        """Persist one call outcome, best-effort."""
        record = CallHistoryRecord(
            instance_name=instance_name,
            http_status=http_status,
            call_info=call_info,
        )
        return await best_effort(
            lambda: self.repository.create(record),
            description=f"call history write ({instance_name} {call_info} {http_status})",
            attempts=self.attempts,
            delay_seconds=self.delay_seconds,
        )

    def _invalidate(self, instance_name: str, reason: str) -> None:
        if self.on_failure is None:
            return
        logger.warning(f"Invalidating client for {instance_name}: {reason}")
        self.on_failure(instance_name)

    async def track(
        self,
        instance_name: str,
        method: str,
        path: str,
        send: Callable[[], Awaitable[httpx.Response]],
    ) -> httpx.Response:
        """Run `send`, record its outcome, and return the response unchanged."""
        _, call_info = describe_call(method, path)

        try:
            response = await send()
        except httpx.TransportError as e:
            self._invalidate(instance_name, f"{type(e).__name__}")
            await self.record(instance_name, call_info, NO_RESPONSE_STATUS)
            raise

        if response.status_code >= 500:
            self._invalidate(instance_name, f"HTTP {response.status_code}")

        await self.record(instance_name, call_info, response.status_code)
        return response


__all__ = ["CallHistoryRecorder", "describe_call", "NO_RESPONSE_STATUS"]
