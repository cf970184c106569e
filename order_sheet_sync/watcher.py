# watcher.py

import asyncio
import logging
import threading
import time
from typing import Optional

from .models import ScanReport
from .order_processor import ReconciliationScanner, ScanState

logger = logging.getLogger(__name__)


class SheetsWatcher:
    """
    Runs reconciliation passes on a fixed interval, one at a time.

    `sleep` and `clock` are injectable so tests can drive passes without a
    real timer. A pass that overruns the interval delays the next one; it
    is never overlapped. Each call to `watch()` gets its own generation, so
    a loop stopped while asleep exits when it wakes even if a new loop has
    been started meanwhile.
    """

    def __init__(self, scanner: ReconciliationScanner, interval: float = 30,
                 sleep=asyncio.sleep, clock=time.monotonic):
        self.scanner = scanner
        self.interval = interval
        self.sleep = sleep
        self.clock = clock
        self.state = ScanState()
        self.is_watching = False
        self.passes = 0
        self.last_report: Optional[ScanReport] = None
        self.last_error: Optional[str] = None
        self._generation = 0
        self._pass_lock = threading.Lock()

    @property
    def pass_running(self) -> bool:
        return self._pass_lock.locked()

    async def run_pass(self) -> Optional[ScanReport]:
        """
        Run one pass now. Never raises, so the schedule survives any failure.

        Returns None when the pass failed or another pass is still running.
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("A reconciliation pass is already running, skipping")
            return None
        try:
            report = await self.scanner.run_pass(self.state)
        except Exception as e:
            logger.exception("Reconciliation pass failed: %s", e)
            self.last_error = str(e)
            return None
        finally:
            self.passes += 1
            self._pass_lock.release()
        self.last_report = report
        self.last_error = None
        return report

    def _active(self, generation: int) -> bool:
        return self.is_watching and self._generation == generation

    async def watch(self):
        if self.is_watching:
            logger.warning("Watcher already running")
            return
        self._generation += 1
        generation = self._generation
        self.is_watching = True
        logger.info("Watching the sheet every %ss", self.interval)
        while self._active(generation):
            started = self.clock()
            await self.run_pass()
            if not self._active(generation):
                break
            await self.sleep(max(0.0, self.interval - (self.clock() - started)))
        logger.info("Watcher stopped")

    def stop(self):
        """Cancel the next scheduled pass; a pass in flight finishes."""
        if not self.is_watching:
            logger.warning("Watcher already stopped")
        self.is_watching = False

    def status(self) -> dict:
        return {
            "isWatching": self.is_watching,
            "passRunning": self.pass_running,
            "pollInterval": self.interval,
            "processedRows": len(self.state),
            "passes": self.passes,
            "lastError": self.last_error,
        }


def start_in_background(watcher: SheetsWatcher) -> Optional[threading.Thread]:
    """Run `watcher.watch()` in a daemon thread with its own event loop."""
    if watcher.is_watching:
        return None
    thread = threading.Thread(target=asyncio.run, args=(watcher.watch(),), name="sheets-watcher", daemon=True)
    thread.start()
    return thread
