from __future__ import annotations

from typing import Callable, List

import httpx
from loguru import logger

from ..client import MigrationClient, MigrationClientError
from ..models.overview import DataOverview
from .notifications import fan_out

OverviewListener = Callable[[DataOverview], None]


class DataOverviewMonitor:
    """Tracks extraction and parse counters from GET /migration/status."""

    def __init__(self, client: MigrationClient):
        self.client = client
        self.snapshot = DataOverview()
        self._listeners: List[OverviewListener] = []

    def subscribe(self, listener: OverviewListener) -> None:
        self._listeners.append(listener)

    async def poll(self) -> DataOverview:
        try:
            self.snapshot = DataOverview.model_validate(await self.client.status() or {})
        except (MigrationClientError, httpx.RequestError, ValueError) as exc:
            logger.error("Error fetching data overview: {}", exc)
            self.snapshot = DataOverview()
        fan_out(self._listeners, self.snapshot, "Data overview")
        return self.snapshot
