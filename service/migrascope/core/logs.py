from __future__ import annotations

from typing import Callable, List, Optional

import httpx
from loguru import logger

from ..client import MigrationClient, MigrationClientError
from .notifications import fan_out
from .scheduler import Poller, SchedulerBase

LOGS_UNAVAILABLE = "Service unavailable - cannot load logs"
NO_LOGS = "No logs available"
NO_MATCHES = "No matching log entries"

LogsListener = Callable[[str], None]


def filter_log_lines(text: str, needle: str) -> str:
    """Keep the lines of ``text`` containing ``needle``, ignoring case."""
    if not needle:
        return text or NO_LOGS
    needle = needle.lower()
    matched = "\n".join(line for line in text.split("\n") if needle in line.lower())
    return matched or NO_MATCHES


class LogMonitor:
    """Tail of the migration log with a live client-side filter.

    The regular poller runs for the whole session; the auto-refresh poller is
    a faster second subscription the user switches on and off.
    """

    def __init__(
        self,
        client: MigrationClient,
        scheduler: SchedulerBase,
        auto_refresh_interval: float = 3.0,
        lines: Optional[int] = None,
    ):
        self.client = client
        self.lines = lines
        self.raw = ""
        self.available = False
        self.filter_text = ""
        self.view = LOGS_UNAVAILABLE
        self._auto = Poller(scheduler, auto_refresh_interval, self.poll, name="logs-auto-refresh")
        self._listeners: List[LogsListener] = []

    def subscribe(self, listener: LogsListener) -> None:
        self._listeners.append(listener)

    @property
    def auto_refresh(self) -> bool:
        return self._auto.running

    async def poll(self) -> str:
        try:
            self.raw = await self.client.logs(self.lines)
            self.available = True
        except (MigrationClientError, httpx.RequestError) as exc:
            logger.error("Error fetching logs: {}", exc)
            self.raw = ""
            self.available = False
        return self._render()

    def set_filter(self, text: str) -> str:
        self.filter_text = text
        return self._render()

    def set_auto_refresh(self, enabled: bool) -> None:
        # Always drop the previous subscription so timers never stack up
        self._auto.stop()
        if enabled:
            self._auto.start()
        logger.debug("Log auto-refresh {}", "on" if enabled else "off")

    def toggle_auto_refresh(self) -> bool:
        self.set_auto_refresh(not self.auto_refresh)
        return self.auto_refresh

    def _render(self) -> str:
        if self.available:
            self.view = filter_log_lines(self.raw, self.filter_text)
        else:
            self.view = LOGS_UNAVAILABLE
        fan_out(self._listeners, self.view, "Logs")
        return self.view
