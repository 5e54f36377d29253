"""Latest-value-wins snapshot channel.

The tracker publishes the full ordered snapshot after each committed
mutation. Only the newest snapshot is kept; a subscriber that joins late
receives it right away and then every later one.
"""
import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class SnapshotChannel:
    def __init__(self):
        self._cond = threading.Condition()
        self._version = 0
        self._latest: Optional[Any] = None
        self._subscribers: List[Callable[[Any], None]] = []

    def publish(self, snapshot) -> int:
        with self._cond:
            self._version += 1
            self._latest = snapshot
            version = self._version
            subscribers = list(self._subscribers)
            self._cond.notify_all()

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                # one broken display must not stop the others
                logger.exception("Snapshot subscriber %r failed", callback)
        return version

    def latest(self) -> Tuple[int, Optional[Any]]:
        with self._cond:
            return self._version, self._latest

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        with self._cond:
            self._subscribers.append(callback)
            latest = self._latest
            has_value = self._version > 0
        if has_value:
            callback(latest)

        def unsubscribe():
            with self._cond:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def wait_for(self, after_version: int, timeout: float) -> Tuple[int, Optional[Any]]:
        """Block until something newer than ``after_version`` is published.

        Returns the latest ``(version, snapshot)`` either way; callers compare
        the version to tell a fresh value from a timeout.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._version > after_version, timeout=timeout)
            return self._version, self._latest
