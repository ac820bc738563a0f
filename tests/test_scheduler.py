import asyncio

import pytest

from migrascope.core.scheduler import AsyncioScheduler, Poller, VirtualScheduler


class Counter:
    def __init__(self, fail_on=()):
        self.calls = 0
        self.fail_on = set(fail_on)

    async def __call__(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError(f"tick {self.calls} exploded")


# ---- Virtual clock ----

@pytest.mark.asyncio
async def test_first_tick_after_one_interval(scheduler):
    action = Counter()
    scheduler.schedule(4.0, action, name="jobs")

    await scheduler.advance(3.9)
    assert action.calls == 0

    await scheduler.advance(0.1)
    assert action.calls == 1


@pytest.mark.asyncio
async def test_ticks_repeat_on_fixed_period(scheduler):
    fast, slow = Counter(), Counter()
    scheduler.schedule(4.0, fast)
    scheduler.schedule(10.0, slow)

    await scheduler.advance(20.0)
    assert fast.calls == 5
    assert slow.calls == 2
    assert scheduler.now == 20.0


@pytest.mark.asyncio
async def test_failing_tick_does_not_stop_the_loop(scheduler):
    action = Counter(fail_on={1, 2})
    scheduler.schedule(1.0, action)

    await scheduler.advance(5.0)
    assert action.calls == 5


@pytest.mark.asyncio
async def test_cancel_stops_future_ticks(scheduler):
    action = Counter()
    handle = scheduler.schedule(2.0, action)

    await scheduler.advance(4.0)
    scheduler.cancel(handle)
    await scheduler.advance(10.0)

    assert action.calls == 2
    assert handle.cancelled
    assert scheduler.active_handles == []


def test_interval_must_be_positive(scheduler):
    with pytest.raises(ValueError):
        scheduler.schedule(0, Counter())


@pytest.mark.asyncio
async def test_poller_restart_keeps_single_subscription(scheduler):
    action = Counter()
    poller = Poller(scheduler, 3.0, action, name="logs-auto-refresh")

    poller.start()
    poller.start()
    assert len(scheduler.active_handles) == 1

    await scheduler.advance(3.0)
    assert action.calls == 1

    poller.stop()
    assert not poller.running
    await scheduler.advance(9.0)
    assert action.calls == 1


# ---- asyncio scheduler ----

@pytest.mark.asyncio
async def test_asyncio_ticks_overlap_when_action_is_slow():
    sched = AsyncioScheduler()
    running = 0
    peak = 0

    async def slow():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.05)
        running -= 1

    handle = sched.schedule(0.01, slow)
    await asyncio.sleep(0.08)
    sched.cancel(handle)
    await asyncio.sleep(0.06)

    assert peak > 1
    assert running == 0


@pytest.mark.asyncio
async def test_asyncio_cancel_leaves_inflight_call_running():
    sched = AsyncioScheduler()
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def action():
        started.set()
        await release.wait()
        finished.append(True)

    handle = sched.schedule(0.01, action)
    await asyncio.wait_for(started.wait(), timeout=1)
    sched.cancel(handle)
    release.set()
    await asyncio.sleep(0.02)

    assert finished
    assert sched.inflight == 0


@pytest.mark.asyncio
async def test_asyncio_error_is_contained():
    sched = AsyncioScheduler()
    action = Counter(fail_on={1})

    sched.schedule(0.01, action)
    await asyncio.sleep(0.055)
    sched.cancel_all()

    assert action.calls >= 2


@pytest.mark.asyncio
async def test_shutdown_cancels_and_awaits_inflight_calls():
    sched = AsyncioScheduler()
    started = asyncio.Event()
    cancelled = []

    async def hangs():
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    sched.schedule(0.01, hangs, name="stuck")
    await asyncio.wait_for(started.wait(), timeout=1)
    await asyncio.wait_for(sched.shutdown(), timeout=1)

    assert cancelled
    assert sched.inflight == 0
    assert sched.active_handles == []


@pytest.mark.asyncio
async def test_spawn_runs_once_and_contains_errors(scheduler):
    action = Counter(fail_on={1})

    await scheduler.spawn(action, name="initial")
    assert action.calls == 1
    assert scheduler.inflight == 0
    assert scheduler.active_handles == []
