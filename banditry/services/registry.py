"""Tracks the one run that may own the arm file at a time.

While a run is active its in-memory arm set is the source of truth and is
written back when the run ends, so edits to the file must wait until then.
"""

from __future__ import annotations

import logging
import threading

from banditry.core.errors import RunInProgress
from banditry.services.scheduler import Scheduler

logger = logging.getLogger(__name__)


class RunRegistry:
    """Holds the active ``Scheduler``, if any."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Scheduler | None = None

    @property
    def busy(self) -> bool:
        return self._current is not None

    def start(self, scheduler: Scheduler) -> None:
        with self._lock:
            if self._current is not None:
                raise RunInProgress("A run is already in progress")
            self._current = scheduler

    def finish(self, scheduler: Scheduler) -> None:
        with self._lock:
            if self._current is scheduler:
                self._current = None

    def stop(self) -> bool:
        """Ask the active run to stop gracefully.  False when nothing is running."""
        with self._lock:
            scheduler = self._current
        if scheduler is None:
            return False
        logger.info("Stopping the active run")
        scheduler.stop()
        return True


registry = RunRegistry()
