"""
At-most-one pending action per website.

A second request for the same (action, website) while the first is still
being resolved is turned away rather than queued. Different websites never
contend with each other.
"""
import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class InFlightGuard:

    def __init__(self):
        self._lock = threading.Lock()
        self._pending = set()

    def try_acquire(self, action, identifier):
        key = (action, str(identifier))
        with self._lock:
            if key in self._pending:
                return False
            self._pending.add(key)
            return True

    def release(self, action, identifier):
        with self._lock:
            self._pending.discard((action, str(identifier)))

    def is_pending(self, action, identifier):
        with self._lock:
            return (action, str(identifier)) in self._pending

    @contextmanager
    def claim(self, action, identifier):
        """
        Yield True if this caller owns the slot, False if one is already pending.

        The slot is released on exit, including when the body raises.
        """
        acquired = self.try_acquire(action, identifier)
        if not acquired:
            logger.debug("Rejected duplicate %s for website %s", action, identifier)
            yield False
            return
        try:
            yield True
        finally:
            self.release(action, identifier)
