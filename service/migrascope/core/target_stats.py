from __future__ import annotations

from typing import Callable, List

import httpx
from loguru import logger

from ..client import MigrationClient, MigrationClientError
from ..models.health import SERVICE_UNAVAILABLE
from ..models.overview import TargetStats
from .notifications import fan_out

CONNECTION_ERROR = "Connection error"

TargetStatsListener = Callable[[TargetStats], None]


class TargetStatsMonitor:
    """Target database statistics, refreshed on demand only.

    There is no timer here: the statistics are expensive to compute on the
    backend, so they are fetched when the user asks or when an execute job
    completes (see ``JobMonitor``).
    """

    def __init__(self, client: MigrationClient):
        self.client = client
        self.snapshot = TargetStats()
        self._listeners: List[TargetStatsListener] = []

    def subscribe(self, listener: TargetStatsListener) -> None:
        self._listeners.append(listener)

    async def refresh(self) -> TargetStats:
        try:
            body = await self.client.target_stats()
            self.snapshot = TargetStats.model_validate(
                {"stats": body.get("stats") or {}, "fetched_at": body.get("fetchedAt") or 0}
            )
        except MigrationClientError as exc:
            message = exc.message or SERVICE_UNAVAILABLE
            logger.warning("Target stats unavailable (HTTP {}): {}", exc.status_code, message)
            self.snapshot = TargetStats.failed(message)
        except httpx.RequestError as exc:
            logger.error("Error fetching target stats: {}", exc)
            self.snapshot = TargetStats.failed(CONNECTION_ERROR)
        except (AttributeError, ValueError) as exc:
            logger.error("Malformed target stats response: {}", exc)
            self.snapshot = TargetStats.failed(SERVICE_UNAVAILABLE)

        fan_out(self._listeners, self.snapshot, "Target stats")
        return self.snapshot
