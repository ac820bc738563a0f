from __future__ import annotations

from typing import Callable, List, Optional

import httpx
from loguru import logger

from ..client import MigrationClient, MigrationClientError
from ..models.health import HealthSnapshot
from .notifications import fan_out

HealthListener = Callable[[HealthSnapshot], None]


class HealthMonitor:
    """Tracks migration service reachability and its two database connections."""

    def __init__(self, client: MigrationClient):
        self.client = client
        self.snapshot = HealthSnapshot.unavailable()
        self._listeners: List[HealthListener] = []

    def subscribe(self, listener: HealthListener) -> None:
        self._listeners.append(listener)

    async def poll(self) -> HealthSnapshot:
        snapshot: Optional[HealthSnapshot] = None
        try:
            body = await self.client.health()
            snapshot = HealthSnapshot.model_validate({**(body or {}), "service_online": True})
        except MigrationClientError as exc:
            logger.warning("Health endpoint returned HTTP {}", exc.status_code)
        except httpx.RequestError as exc:
            logger.error("Error fetching health status: {}", exc)
        except (TypeError, ValueError) as exc:
            logger.error("Malformed health response: {}", exc)

        self.snapshot = snapshot or HealthSnapshot.unavailable()
        fan_out(self._listeners, self.snapshot, "Health")
        return self.snapshot
