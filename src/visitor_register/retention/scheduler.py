from __future__ import annotations

import logging
import threading
from typing import Optional

from ..core.constants import DEFAULT_RETENTION_INTERVAL_HOURS
from .job import RetentionJob, RetentionResult

logger = logging.getLogger(__name__)


class RetentionScheduler:
    """Runs the retention job once at start and then every ``interval_hours``."""

    def __init__(
        self,
        job: RetentionJob,
        *,
        interval_hours: float = DEFAULT_RETENTION_INTERVAL_HOURS,
        run_at_start: bool = True,
    ):
        if interval_hours <= 0:
            raise ValueError("interval_hours must be positive")
        self._job = job
        self._interval = float(interval_hours) * 3600
        self._run_at_start = run_at_start
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_result: Optional[RetentionResult] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="retention-job", daemon=True)
        self._thread.start()
        logger.info("Retention scheduler started (every %.1f h)", self._interval / 3600)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> RetentionResult:
        self.last_result = self._job.run()
        return self.last_result

    def _loop(self) -> None:
        if self._run_at_start:
            self.run_once()
        while not self._stop.wait(self._interval):
            self.run_once()
