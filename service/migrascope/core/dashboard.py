from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import httpx
from loguru import logger

from ..client import MigrationClient, MigrationClientError
from ..config import Settings, get_settings
from ..models.job import Job
from .cache import ConfigCacheBase, build_config_cache
from .config_sync import ConfigReconciler
from .health import HealthMonitor
from .jobs import JobMonitor
from .logs import LogMonitor
from .notifications import Notifier
from .overview import DataOverviewMonitor
from .scheduler import AsyncioScheduler, Poller, SchedulerBase
from .target_stats import TargetStatsMonitor


class Dashboard:
    """All monitors wired onto one client, one scheduler and one notifier.

    Each monitor polls on its own timer and owns its own snapshot.  The only
    cross-monitor link is JobMonitor refreshing TargetStatsMonitor when an
    execute job completes.
    """

    def __init__(
        self,
        client: MigrationClient,
        scheduler: Optional[SchedulerBase] = None,
        cache: Optional[ConfigCacheBase] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.scheduler = scheduler or AsyncioScheduler()
        self.notifier = notifier or Notifier()

        self.health = HealthMonitor(client)
        self.overview = DataOverviewMonitor(client)
        self.target_stats = TargetStatsMonitor(client)
        self.jobs = JobMonitor(client, notifier=self.notifier, on_execute_completed=self._refresh_target_stats)
        self.logs = LogMonitor(
            client,
            self.scheduler,
            auto_refresh_interval=self.settings.logs_auto_refresh_interval,
            lines=self.settings.log_lines,
        )
        self.config = ConfigReconciler(
            client,
            cache if cache is not None else build_config_cache(self.settings),
            notifier=self.notifier,
            after_sync=self._after_config_sync,
            after_save=self.health.poll,
        )

        self._pollers: List[Poller] = [
            Poller(self.scheduler, self.settings.health_interval, self.health.poll, name="health"),
            Poller(self.scheduler, self.settings.status_interval, self.overview.poll, name="status"),
            Poller(self.scheduler, self.settings.jobs_interval, self.jobs.poll, name="jobs"),
            Poller(self.scheduler, self.settings.logs_interval, self.logs.poll, name="logs"),
        ]
        self._startup: List[asyncio.Task] = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "Dashboard":
        settings = settings or get_settings()
        client = MigrationClient(settings.base_url, timeout=settings.request_timeout)
        return cls(client, settings=settings, **kwargs)

    # -- lifecycle --

    async def start(self) -> None:
        """Schedule the periodic timers, then launch one initial refresh per resource.

        Each initial refresh and the config load runs as its own task, so a
        request that never answers holds back only its own resource.  Returns
        without waiting for them; see ``wait_initial_refresh()``.
        """
        logger.info("Starting dashboard against {}", self.client.base_url)
        for poller in self._pollers:
            poller.start()
        self._startup = [
            self.scheduler.spawn(self.health.poll, name="initial-health"),
            self.scheduler.spawn(self.overview.poll, name="initial-status"),
            self.scheduler.spawn(self.target_stats.refresh, name="initial-target-stats"),
            self.scheduler.spawn(self.jobs.poll, name="initial-jobs"),
            self.scheduler.spawn(self.logs.poll, name="initial-logs"),
            self.scheduler.spawn(self.config.load, name="initial-config"),
        ]

    async def wait_initial_refresh(self) -> None:
        if self._startup:
            await asyncio.gather(*self._startup, return_exceptions=True)

    def stop(self) -> None:
        for poller in self._pollers:
            poller.stop()
        self.logs.set_auto_refresh(False)

    async def aclose(self) -> None:
        """Stop the timers, cancel whatever is still in flight, then close the client."""
        self.stop()
        await self.scheduler.shutdown()
        self._startup = []
        await self.client.aclose()

    # -- actions --

    async def start_job(self, job_type: str) -> bool:
        try:
            await self.client.start_job(job_type)
        except MigrationClientError as exc:
            self.notifier.error(f"Failed to start {job_type} job: {exc.message or exc.detail}")
            return False
        except httpx.RequestError as exc:
            self.notifier.error(f"Error starting {job_type} job: {exc}")
            return False
        self.notifier.success(f"{job_type} job started successfully")
        await self.jobs.poll()
        return True

    async def reset_system(self) -> bool:
        try:
            await self.client.reset()
        except MigrationClientError as exc:
            self.notifier.error(f"Failed to reset system: {exc.message or exc.detail}")
            return False
        except httpx.RequestError as exc:
            self.notifier.error(f"Error resetting system: {exc}")
            return False
        self.notifier.success("System reset successfully")
        await self.overview.poll()
        await self.jobs.poll()
        return True

    # -- hooks --

    async def _refresh_target_stats(self, job: Job) -> None:
        await self.target_stats.refresh()

    async def _after_config_sync(self) -> None:
        await self.health.poll()
        await self.target_stats.refresh()
