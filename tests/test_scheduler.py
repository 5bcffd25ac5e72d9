"""
Tests for the timer layer.
"""
import asyncio

from audio.scheduler import LoopScheduler, ManualClock


def test_manual_clock_runs_due_callbacks_in_order():
    clock = ManualClock()
    calls = []
    clock.call_later(2.0, calls.append, "b")
    clock.call_later(1.0, calls.append, "a")
    clock.call_later(1.0, calls.append, "a2")

    clock.advance(1.5)
    assert calls == ["a", "a2"]
    assert clock.time() == 1.5
    clock.advance(1.0)
    assert calls == ["a", "a2", "b"]


def test_callbacks_see_their_due_time():
    clock = ManualClock()
    seen = []
    clock.call_later(0.5, lambda: seen.append(clock.time()))
    clock.advance(2.0)
    assert seen == [0.5]


def test_rescheduling_inside_advance():
    clock = ManualClock()
    ticks = []

    def tick():
        ticks.append(clock.time())
        clock.call_later(1.0, tick)

    clock.call_later(1.0, tick)
    clock.advance(3.5)
    assert ticks == [1.0, 2.0, 3.0]
    assert clock.next_due() == 4.0


def test_cancelled_handles_never_run():
    clock = ManualClock()
    calls = []
    handle = clock.call_later(1.0, calls.append, "x")
    handle.cancel()
    assert handle.cancelled()
    assert clock.pending() == []
    clock.advance(2.0)
    assert calls == []


def test_loop_scheduler_uses_running_loop():
    async def run():
        scheduler = LoopScheduler()
        done = asyncio.Event()
        handle = scheduler.call_later(0.01, done.set)
        await asyncio.wait_for(done.wait(), 1.0)
        return scheduler.time(), handle

    now, handle = asyncio.run(run())
    assert now > 0
    assert not handle.cancelled()
