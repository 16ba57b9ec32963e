"""Latest-request-wins coordination for interactive screening.

Every screen started through a :class:`ScreenSession` gets a sequence
number.  A completed response is only published if no newer screen was
started in the meantime, so a slow earlier request can never overwrite the
results of a later one.
"""

from __future__ import annotations

import itertools
import threading

from app.logging import get_logger
from screener.executor import ScreenExecutor
from screener.models import ScreenerResponse, ScreenRequest

logger = get_logger(__name__)


class ScreenSession:
    """Track in-flight screens and keep only the newest response."""

    def __init__(self, executor: ScreenExecutor) -> None:
        self._executor = executor
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._current = 0
        self._latest: ScreenerResponse | None = None

    @property
    def latest(self) -> ScreenerResponse | None:
        """The most recent response that was not superseded."""
        with self._lock:
            return self._latest

    def begin(self) -> int:
        """Register a new screen and return its sequence number."""
        with self._lock:
            self._current = next(self._counter)
            return self._current

    def is_current(self, seq: int) -> bool:
        with self._lock:
            return seq == self._current

    def complete(self, seq: int, response: ScreenerResponse) -> bool:
        """Publish *response* if *seq* is still the newest screen.

        Returns:
            ``True`` if the response was accepted, ``False`` if it was stale
            and discarded.
        """
        with self._lock:
            if seq != self._current:
                logger.debug("Discarding stale screen response #%d (current #%d)", seq, self._current)
                return False
            self._latest = response
            return True

    def run(self, request: ScreenRequest) -> ScreenerResponse | None:
        """Execute *request*; return its response, or ``None`` if superseded."""
        seq = self.begin()
        response = self._executor.execute(request)
        if self.complete(seq, response):
            return response
        return None
