"""Scheduler abstraction: SchedulerBase ABC, AsyncioScheduler, and VirtualScheduler.

Monitors never talk to timers directly.  They hand an async action to
``schedule()`` and keep the returned handle for ``cancel()``.  Production
uses AsyncioScheduler; tests use VirtualScheduler and advance its clock.
"""

from __future__ import annotations

import abc
import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

from loguru import logger

PollAction = Callable[[], Awaitable[None]]

_handle_ids = itertools.count(1)


@dataclass(eq=False)
class PollHandle:
    interval: float
    action: PollAction
    name: str = ""
    id: int = field(default_factory=lambda: next(_handle_ids))
    cancelled: bool = False
    # Bookkeeping owned by the scheduler implementation
    next_due: float = 0.0
    task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return not self.cancelled


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SchedulerBase(abc.ABC):
    """Interface that AsyncioScheduler and VirtualScheduler both implement."""

    def __init__(self):
        self._handles: List[PollHandle] = []
        self._inflight: Set[asyncio.Task] = set()

    @abc.abstractmethod
    def schedule(self, interval: float, action: PollAction, name: str = "") -> PollHandle:
        """Run ``action`` every ``interval`` seconds, first tick after one interval."""
        ...

    @abc.abstractmethod
    def cancel(self, handle: PollHandle) -> None:
        """Stop future ticks of ``handle``.  In-flight invocations are not aborted."""
        ...

    async def _invoke(self, action: PollAction, label: object) -> None:
        try:
            await action()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Poll action {!r} failed", label)

    def spawn(self, action: PollAction, name: str = "") -> asyncio.Task:
        """Run ``action`` once, now, as an independent tracked task.

        Errors are logged like tick errors.  The task counts towards
        ``inflight`` and is cancelled by ``shutdown()``.
        """
        task = asyncio.get_running_loop().create_task(self._invoke(action, name or action))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def _fire(self, handle: PollHandle) -> asyncio.Task:
        # Ticks are not serialized: a slow invocation may still be running
        return self.spawn(handle.action, handle.name or str(handle.id))

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    @property
    def active_handles(self) -> List[PollHandle]:
        return list(self._handles)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            self.cancel(handle)

    async def shutdown(self) -> None:
        """Cancel every timer, then cancel and await the invocations still in flight."""
        self.cancel_all()
        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug("Cancelled {} in-flight poll action(s)", len(pending))


# ---------------------------------------------------------------------------
# asyncio implementation (used by the running dashboard)
# ---------------------------------------------------------------------------

class AsyncioScheduler(SchedulerBase):
    def schedule(self, interval: float, action: PollAction, name: str = "") -> PollHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = PollHandle(interval=interval, action=action, name=name)
        handle.task = asyncio.get_running_loop().create_task(self._loop(handle))
        self._handles.append(handle)
        logger.debug("Scheduled {!r} every {}s", name or handle.id, interval)
        return handle

    def cancel(self, handle: PollHandle) -> None:
        if handle.cancelled:
            return
        handle.cancelled = True
        if handle.task is not None:
            handle.task.cancel()
        if handle in self._handles:
            self._handles.remove(handle)
        logger.debug("Cancelled {!r}", handle.name or handle.id)

    async def _loop(self, handle: PollHandle) -> None:
        while not handle.cancelled:
            await asyncio.sleep(handle.interval)
            if handle.cancelled:
                break
            self._fire(handle)


# ---------------------------------------------------------------------------
# Virtual-clock implementation (used in tests)
# ---------------------------------------------------------------------------

class VirtualScheduler(SchedulerBase):
    """Deterministic scheduler whose clock only moves through ``advance()``."""

    def __init__(self):
        super().__init__()
        self.now = 0.0

    def schedule(self, interval: float, action: PollAction, name: str = "") -> PollHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = PollHandle(interval=interval, action=action, name=name, next_due=self.now + interval)
        self._handles.append(handle)
        return handle

    def cancel(self, handle: PollHandle) -> None:
        handle.cancelled = True
        if handle in self._handles:
            self._handles.remove(handle)

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every tick that falls due, in time order.

        Ticks due at the same instant fire in scheduling order.  All actions
        started during the advance are awaited before returning.
        """
        deadline = self.now + seconds
        started: List[asyncio.Task] = []
        while True:
            due = [h for h in self._handles if h.next_due <= deadline]
            if not due:
                break
            handle = min(due, key=lambda h: (h.next_due, h.id))
            self.now = handle.next_due
            handle.next_due += handle.interval
            started.append(self._fire(handle))
            # Let the action run up to its first suspension point
            await asyncio.sleep(0)
        self.now = deadline
        if started:
            await asyncio.gather(*started)


class Poller:
    """A single restartable subscription of ``action`` on a scheduler.

    ``start()`` always cancels the previous subscription first, so one
    Poller never owns two live timers.
    """

    def __init__(self, scheduler: SchedulerBase, interval: float, action: PollAction, name: str = ""):
        self.scheduler = scheduler
        self.interval = interval
        self.action = action
        self.name = name
        self.handle: Optional[PollHandle] = None

    @property
    def running(self) -> bool:
        return self.handle is not None and self.handle.active

    def start(self) -> PollHandle:
        self.stop()
        self.handle = self.scheduler.schedule(self.interval, self.action, name=self.name)
        return self.handle

    def stop(self) -> None:
        if self.handle is not None:
            self.scheduler.cancel(self.handle)
            self.handle = None
