"""Unit tests for the overdue sweep scheduler"""

import asyncio
from datetime import datetime, timezone

from peer_ledger.scheduler import OverdueSweepScheduler


def test_tick_marks_overdue_through_engine(funded_ledger, clock):
    """Test a tick commits an overdue sweep through the engine"""
    engine, ids = funded_ledger
    version = engine.version
    clock.advance(days=40)

    result = OverdueSweepScheduler(engine, clock=clock).tick()

    assert result.version == version + 1
    assert result.command.name == "OverdueSweep"
    assert engine.snapshot.loans[ids["loan"]].is_overdue


def test_tick_before_due_date_does_not_commit(funded_ledger, clock):
    """Test a tick with nothing overdue does not commit"""
    engine, _ = funded_ledger
    version = engine.version

    result = OverdueSweepScheduler(engine, clock=clock).tick()

    assert result.changes.is_empty
    assert engine.version == version


def test_run_sweeps_on_interval(funded_ledger, clock):
    """Test the running scheduler sweeps on its interval"""
    engine, ids = funded_ledger
    clock.advance(days=40)
    scheduler = OverdueSweepScheduler(engine, interval_seconds=0.01, clock=clock)

    async def scenario():
        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(scenario())

    assert not scheduler.running
    assert engine.snapshot.loans[ids["loan"]].is_overdue


def test_failing_tick_keeps_loop_alive(ledger):
    """Test a failing tick does not stop later ticks"""
    calls = []

    def flaky_clock():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("clock unavailable")
        return datetime(2026, 3, 1, tzinfo=timezone.utc)

    scheduler = OverdueSweepScheduler(ledger, interval_seconds=0.01, clock=flaky_clock)

    async def scenario():
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(scenario())

    assert len(calls) > 1


def test_stop_without_start_is_noop(ledger):
    """Test stopping a scheduler that never started"""
    scheduler = OverdueSweepScheduler(ledger)
    asyncio.run(scheduler.stop())
    assert not scheduler.running
