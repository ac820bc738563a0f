"""Job list tracking and execute-job completion detection.

Each poll replaces the job snapshot wholesale.  The only state carried from
one poll to the next is the state of the execute slot, which is what makes
the completion side effect edge-triggered: it fires when the slot is seen
COMPLETED after having been anything else (including absent) on the
previous poll, and never again while it stays COMPLETED.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

import httpx
from loguru import logger
from pydantic import ValidationError

from ..client import MigrationClient, MigrationClientError
from ..models.job import EXECUTE_JOB_TYPES, ExecuteSlot, Job, JobsSnapshot, JobState, idle_indicators
from .notifications import Notifier, fan_out

CompletionHook = Callable[[Job], Awaitable[Any]]
JobsListener = Callable[[JobsSnapshot], None]

EXECUTE_COMPLETED_MESSAGE = "Execute job completed - target database stats refreshed"


def parse_jobs(raw: Iterable[Any]) -> List[Job]:
    """Validate wire jobs, dropping (and logging) entries that do not parse."""
    jobs: List[Job] = []
    for item in raw:
        try:
            jobs.append(Job.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed job entry: {}", exc.errors()[:1])
    return jobs


def derive_execute_candidate(jobs: Sequence[Job]) -> Optional[Job]:
    """Last job in list order whose type is execute-pre, execute-post or full.

    List order, not ``started_at``, decides: the backend lists jobs in
    submission order.
    """
    candidate = None
    for job in jobs:
        if job.job_type in EXECUTE_JOB_TYPES:
            candidate = job
    return candidate


def status_indicators(jobs: Sequence[Job]) -> Dict[str, JobState]:
    indicators = idle_indicators()
    for job in jobs:
        if job.job_type in indicators:
            indicators[job.job_type] = job.state
    return indicators


def sort_newest_first(jobs: Sequence[Job]) -> List[Job]:
    # sorted() is stable under reverse=True, so equal start times keep list order
    return sorted(jobs, key=Job.started_sort_key, reverse=True)


class JobMonitor:
    def __init__(
        self,
        client: MigrationClient,
        notifier: Optional[Notifier] = None,
        on_execute_completed: Optional[CompletionHook] = None,
    ):
        self.client = client
        self.notifier = notifier
        self.on_execute_completed = on_execute_completed
        self.snapshot = JobsSnapshot()
        self.completions = 0
        self._last_execute_state: Optional[JobState] = None
        self._listeners: List[JobsListener] = []

    @property
    def last_execute_state(self) -> Optional[JobState]:
        return self._last_execute_state

    def subscribe(self, listener: JobsListener) -> None:
        self._listeners.append(listener)

    async def poll(self) -> JobsSnapshot:
        try:
            jobs = parse_jobs(await self.client.jobs())
            available = True
        except (MigrationClientError, httpx.RequestError, ValueError, TypeError) as exc:
            logger.error("Error fetching jobs: {}", exc)
            jobs, available = [], False

        completed = self.apply(jobs, available=available)
        if completed is not None:
            await self._execute_completed(completed)
        return self.snapshot

    def apply(self, jobs: Sequence[Job], available: bool = True) -> Optional[Job]:
        """Reduce one poll's job list into a new snapshot.

        Runs without suspending, so the remembered slot state is updated
        before any side effect is awaited.  Returns the execute job when it
        has just transitioned to COMPLETED, else None.
        """
        candidate = derive_execute_candidate(jobs)
        slot = ExecuteSlot(job=candidate, previous_state=self._last_execute_state)
        self._last_execute_state = slot.state

        self.snapshot = JobsSnapshot(
            jobs=sort_newest_first(jobs),
            indicators=status_indicators(jobs),
            execute_slot=slot,
            available=available,
        )
        fan_out(self._listeners, self.snapshot, "Jobs")
        return candidate if slot.just_completed else None

    async def _execute_completed(self, job: Job) -> None:
        self.completions += 1
        logger.info("{} job completed, refreshing target database stats", job.job_type)
        if self.on_execute_completed is not None:
            try:
                await self.on_execute_completed(job)
            except Exception:
                logger.exception("Execute completion hook failed for {}", job.job_id or job.job_type)
        if self.notifier is not None:
            self.notifier.success(EXECUTE_COMPLETED_MESSAGE)
