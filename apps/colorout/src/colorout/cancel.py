from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class CancelSignal:
    """One-way cancellation flag shared by every task of a run."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        with self._lock:
            return self._reason

    def trigger(self, reason: str) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
        logger.debug("cancellation triggered: %s", reason)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)
