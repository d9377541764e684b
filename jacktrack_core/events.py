"""
Listener registry shared by the owned state objects.

DeviceRegistry, LocationTracker, NavigationSession and ScorecardEngine all
expose subscribe(listener) -> unsubscribe. Listeners are called
synchronously, in subscription order, after the owner's lock is released.
"""

import logging
import threading
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class ListenerRegistry:
    """
    Ordered set of callbacks.

    Usage:
        listeners = ListenerRegistry()
        unsubscribe = listeners.add(print)
        listeners.notify("event")
        unsubscribe()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def add(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Callable taking one event argument

        Returns:
            Zero-argument callable that removes the listener (safe to call twice)
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: Any):
        """Call every listener with event."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(event)

    def clear(self):
        with self._lock:
            self._listeners.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
