"""
Scheduler - Periodic driver for the reconciliation loop

The scheduler owns a single background thread that runs one reconciliation
cycle per interval. Cycles never overlap: the next wait only starts after
the previous cycle has returned.
"""

import logging
import signal
import threading
from typing import Optional

from .reconciler import Reconciler
from ..models import CycleReport

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """Runs Reconciler.run_cycle every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        reconciler: Reconciler,
        interval_seconds: int = 300,
        run_on_start: bool = False,
    ):
        self.reconciler = reconciler
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start
        self.last_report: Optional[CycleReport] = None
        self.cycles_run = 0
        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the background thread."""
        if self.is_running:
            logger.warning("DNS reconciliation scheduler is already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="ddns-reconciler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop scheduling cycles and wait for the in-flight one to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def run_forever(self) -> None:
        """Run in the calling thread until SIGINT/SIGTERM or stop()."""
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, self._handle_signal)
            signal.signal(signal.SIGTERM, self._handle_signal)
        self._stop_event.clear()
        self._run()

    def _handle_signal(self, signum, frame):
        logger.info(f"Received signal {signum}, shutting down after the current record")
        self._stop_event.set()

    def run_once(self) -> Optional[CycleReport]:
        """Run a single cycle now unless one is already in flight."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("A reconciliation cycle is already running, skipping")
            return None

        try:
            report = self.reconciler.run_cycle(should_stop=self._stop_event.is_set)
        except Exception:
            # Never let one bad cycle end the loop
            logger.exception("Unexpected error during DNS reconciliation cycle")
            return None
        finally:
            self._cycle_lock.release()

        self.cycles_run += 1
        self.last_report = report
        return report

    def _run(self) -> None:
        logger.info(
            f"DNS reconciliation service started (interval: {self.interval_seconds}s)"
        )

        if self.run_on_start and not self._stop_event.is_set():
            self.run_once()

        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()

        logger.info("DNS reconciliation service stopped")
