"""Cancellation and progress reporting handed into every resolution call."""
from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class ProgressMonitor:
    """Default monitor: never cancelled, reports progress to the DEBUG log.

    Callers may subclass it, or pass any object with the same two methods.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def report_progress(self, message: str, units: int = 1) -> None:
        logger.debug("%s (+%d)", message, units)


NULL_MONITOR = ProgressMonitor()
