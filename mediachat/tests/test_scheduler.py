import asyncio

import pytest

from mediachat.pipeline.scheduler import AsyncioTaskScheduler, VirtualClockScheduler


async def test_virtual_clock_runs_callbacks_in_due_order():
    scheduler = VirtualClockScheduler()
    ran = []

    def record(label):
        async def callback():
            ran.append((label, scheduler.now))
        return callback

    scheduler.schedule(30, record("late"))
    scheduler.schedule(10, record("early"))
    scheduler.schedule(10, record("early-second"))
    assert scheduler.pending_delays() == [10, 10, 30]

    await scheduler.advance(9)
    assert ran == []

    await scheduler.advance(1)
    assert ran == [("early", 10), ("early-second", 10)]
    assert scheduler.pending == 1

    await scheduler.run_all()
    assert ran[-1] == ("late", 30)
    assert scheduler.pending == 0


async def test_virtual_clock_runs_chained_callbacks_within_window():
    scheduler = VirtualClockScheduler()
    ran = []

    async def second():
        ran.append(scheduler.now)

    async def first():
        ran.append(scheduler.now)
        scheduler.schedule(5, second)

    scheduler.schedule(5, first)
    await scheduler.advance(20)

    assert ran == [5, 10]
    assert scheduler.now == 20


async def test_virtual_clock_run_all_guards_against_endless_rescheduling():
    scheduler = VirtualClockScheduler()

    async def forever():
        scheduler.schedule(1, forever)

    scheduler.schedule(1, forever)
    with pytest.raises(RuntimeError):
        await scheduler.run_all(max_steps=10)


async def test_asyncio_scheduler_runs_and_closes():
    scheduler = AsyncioTaskScheduler()
    done = asyncio.Event()

    async def callback():
        done.set()

    async def never():
        raise AssertionError("cancelled callbacks must not run")

    scheduler.schedule(0, callback, name="immediate")
    scheduler.schedule(3600, never, name="far")
    await asyncio.wait_for(done.wait(), timeout=1)
    await asyncio.sleep(0.01)

    assert scheduler.pending == 1
    await scheduler.close()
    assert scheduler.pending == 0


async def test_asyncio_scheduler_survives_failing_callback():
    scheduler = AsyncioTaskScheduler()
    done = asyncio.Event()

    async def boom():
        raise ValueError("boom")

    async def after():
        done.set()

    scheduler.schedule(0, boom)
    scheduler.schedule(0.01, after)
    await asyncio.wait_for(done.wait(), timeout=1)
    await scheduler.close()
