"""Periodic overdue sweep driven through the engine's command path"""

import asyncio
import logging
from typing import Optional

from peer_ledger.domain.commands import OverdueSweep
from peer_ledger.domain.engine import Clock, CommandResult, LedgerEngine
from peer_ledger.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class OverdueSweepScheduler:
    """
    Submit an OverdueSweep command on a fixed interval.

    The scheduler never touches ledger state itself; each tick goes through
    LedgerEngine.execute, so sweeps and user commands are serialized.
    """

    def __init__(self, engine: LedgerEngine, interval_seconds: float = 60.0, clock: Clock = utc_now):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> CommandResult:
        result = self.engine.execute(OverdueSweep(now=self.clock()))
        marked = len(result.changes.loans.updated)
        if marked:
            logger.info("Overdue sweep marked loans", extra={"loans_marked": marked, "version": result.version})
        return result

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.tick()
            except Exception:
                # One bad tick must not stop future sweeps
                logger.exception("Overdue sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())
        logger.info("Overdue sweep scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Overdue sweep scheduler stopped")
