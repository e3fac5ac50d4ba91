# ============================================================================
# INSTANCE HEALTH SERVICE
# ============================================================================
# STATUS: Core - Instance selection and health re-evaluation
# PURPOSE: Decide which instance receives the next job
# CREATED: 19 OCT 2026
# ============================================================================
"""
Instance Health Service

Two responsibilities:
- Selection: get_next_available_instance() picks among enabled instances,
  Healthy before Degraded before Unhealthy, then never-used before used,
  then least used, then least recently used.
- Evaluation: re_evaluate_health() recomputes every instance's state from
  job outcomes in the trailing job-output-status window and writes back
  only the records whose state changed. It is the only writer of health
  state. Call history is collected and logged alongside.

Usage counts live in process memory. They only break ties and are lost on
restart.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from itertools import count
from typing import Dict, Iterable, List, Optional

from psycopg_pool import AsyncConnectionPool

from core.config import HealthSettings
from core.contracts import InstanceHealthState, JobState, utc_now
from core.errors import NoAvailableInstanceError
from core.logging import log_checkpoint
from core.models import CallHistoryRecord, InstanceHealthRecord, JobOutputStatusRecord
from repositories import CallHistoryRepository, InstanceHealthRepository, JobOutputStatusRepository

logger = logging.getLogger(__name__)


# ============================================================================
# HEALTH COMPUTATION
# ============================================================================

@dataclass
class HealthStatistics:
    """Observed outcomes for one instance over the trailing windows."""
    success_count: int = 0
    failure_count: int = 0
    in_process_count: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    stuck_jobs: int = 0

    @property
    def job_success_ratio(self) -> Optional[float]:
        total = self.success_count + self.failure_count
        return self.success_count / total if total else None

    @property
    def call_success_ratio(self) -> Optional[float]:
        total = self.successful_calls + self.failed_calls
        return self.successful_calls / total if total else None

    @property
    def success_ratio(self) -> Optional[float]:
        """Job outcomes only; None when no job finished or failed. Calls are logged, not scored."""
        return self.job_success_ratio


def collect_statistics(
    status_records: Iterable[JobOutputStatusRecord],
    call_records: Iterable[CallHistoryRecord],
    as_of: datetime,
    stuck_after: timedelta,
) -> HealthStatistics:
    """Classify jobs and calls. A job counts once, by everything seen for it."""
    stats = HealthStatistics()

    by_job: Dict[str, List[JobOutputStatusRecord]] = {}
    for record in status_records:
        by_job.setdefault(record.job_name, []).append(record)

    for job_name, records in by_job.items():
        states = {r.job_output_state for r in records}
        if JobState.FINISHED in states:
            stats.success_count += 1
        elif JobState.ERROR in states:
            stats.failure_count += 1
        elif JobState.CANCELED in states:
            continue
        else:
            stats.in_process_count += 1
            first_seen = min(r.event_time for r in records)
            if as_of - first_seen > stuck_after:
                logger.warning(f"Job {job_name} in process since {first_seen.isoformat()}")
                stats.stuck_jobs += 1

    for call in call_records:
        if call.is_success():
            stats.successful_calls += 1
        else:
            stats.failed_calls += 1

    return stats


def evaluate_state(
    current: InstanceHealthState,
    stats: HealthStatistics,
    settings: HealthSettings,
) -> InstanceHealthState:
    """New health state from statistics. Stuck jobs win over the ratio."""
    if stats.stuck_jobs:
        return InstanceHealthState.UNHEALTHY

    ratio = stats.success_ratio
    if ratio is None:
        return current
    if ratio >= settings.healthy_success_rate:
        return InstanceHealthState.HEALTHY
    if ratio <= settings.unhealthy_success_rate:
        return InstanceHealthState.UNHEALTHY
    return InstanceHealthState.DEGRADED


# ============================================================================
# SERVICE
# ============================================================================

class InstanceHealthService:
    """Instance selection and health evaluation."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        settings: HealthSettings,
        health_repo: Optional[InstanceHealthRepository] = None,
        status_repo: Optional[JobOutputStatusRepository] = None,
        call_history_repo: Optional[CallHistoryRepository] = None,
    ):
        self.pool = pool
        self.settings = settings
        self.health_repo = health_repo or InstanceHealthRepository(pool)
        self.status_repo = status_repo or JobOutputStatusRepository(pool)
        self.call_history_repo = call_history_repo or CallHistoryRepository(pool)

        self._usage: Dict[str, int] = {}
        self._last_used: Dict[str, int] = {}
        self._sequence = count(1)
        self._usage_lock = threading.Lock()

    # ------------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------------

    def record_usage(self, instance_name: str) -> None:
        with self._usage_lock:
            self._usage[instance_name] = self._usage.get(instance_name, 0) + 1
            self._last_used[instance_name] = next(self._sequence)
        logger.debug(f"Instance usage: {self._usage}")

    def usage(self, instance_name: str) -> int:
        return self._usage.get(instance_name, 0)

    async def get_next_available_instance(self) -> str:
        """
        Best enabled instance.

        Raises:
            NoAvailableInstanceError: no enabled instance exists
        """
        records = [r for r in await self.health_repo.list() if r.is_selectable()]
        if not records:
            raise NoAvailableInstanceError("No enabled Media Services instance is available")

        with self._usage_lock:
            def sort_key(record: InstanceHealthRecord):
                name = record.instance_name
                return (
                    record.health_state.rank,
                    name in self._usage,
                    self._usage.get(name, 0),
                    self._last_used.get(name, 0),
                    name,
                )

            best = min(records, key=sort_key)

        if best.health_state != InstanceHealthState.HEALTHY:
            logger.warning(
                f"No healthy instance available, selected {best.instance_name} "
                f"({best.health_state.value})"
            )
        else:
            logger.info(f"Selected instance {best.instance_name}")
        return best.instance_name

    # ------------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------------

    async def compute_statistics(self, instance_name: str, as_of: datetime) -> HealthStatistics:
        job_window = timedelta(minutes=self.settings.job_history_window_minutes)
        call_window = timedelta(minutes=self.settings.call_history_window_minutes)

        status_records = await self.status_repo.list_by_instance(
            instance_name, since=as_of - job_window, until=as_of
        )
        call_records = await self.call_history_repo.list_by_instance(
            instance_name, since=as_of - call_window, until=as_of
        )
        return collect_statistics(
            status_records,
            call_records,
            as_of=as_of,
            stuck_after=timedelta(minutes=self.settings.job_stuck_minutes),
        )

    async def re_evaluate_health(self, as_of: Optional[datetime] = None) -> List[InstanceHealthRecord]:
        """
        Recompute every instance's state; persist and return the changed records.
        """
        as_of = as_of or utc_now()
        updated: List[InstanceHealthRecord] = []

        for record in await self.health_repo.list():
            stats = await self.compute_statistics(record.instance_name, as_of)
            new_state = evaluate_state(record.health_state, stats, self.settings)

            logger.info(
                f"Health of {record.instance_name}: success={stats.success_count} "
                f"failure={stats.failure_count} in_process={stats.in_process_count} "
                f"stuck={stats.stuck_jobs} calls_ok={stats.successful_calls} "
                f"calls_failed={stats.failed_calls} ratio={stats.success_ratio} "
                f"state={record.health_state.value}->{new_state.value}"
            )

            if new_state == record.health_state:
                continue

            record.health_state = new_state
            record.last_updated = as_of
            await self.health_repo.create_or_update(record)
            updated.append(record)

        if updated:
            log_checkpoint(
                "instance_health_changed",
                {r.instance_name: r.health_state.value for r in updated},
                logger=logger,
            )
        return updated

    # ------------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------------

    async def list_instances(self) -> List[InstanceHealthRecord]:
        return await self.health_repo.list()

    async def ensure_instances(self, instance_names: Iterable[str]) -> List[InstanceHealthRecord]:
        """Create a Healthy, enabled record for each configured instance without one."""
        existing = {r.instance_name for r in await self.health_repo.list()}
        created = []
        for name in instance_names:
            if name in existing:
                continue
            record = await self.health_repo.create_or_update(InstanceHealthRecord(instance_name=name))
            logger.info(f"Registered instance {name}")
            created.append(record)
        return created

    async def set_enabled(self, instance_name: str, is_enabled: bool) -> InstanceHealthRecord:
        return await self.health_repo.set_enabled(instance_name, is_enabled)


__all__ = [
    "HealthStatistics",
    "collect_statistics",
    "evaluate_state",
    "InstanceHealthService",
]
