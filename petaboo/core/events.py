# petaboo/core/events.py
"""
In-process pub/sub used for soft real-time updates (e.g. new join requests
for team admins).

One ``EventBus`` is built per application instance in the lifespan handler
and handed to routes through a dependency. Delivery is same-process fan-out
only: nothing is persisted, listeners registered after an emit never see it.
"""
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional

logger = logging.getLogger("Petaboo.Events")

EventCallback = Callable[[Any], None]


class TeamEvents:
    NEW_APPLICATION = "team:new-application"
    APPLICATION_APPROVED = "team:application-approved"
    APPLICATION_REJECTED = "team:application-rejected"


class EventBus:
    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[EventCallback]] = defaultdict(list)
        # Sync handlers run in the threadpool, so the registry is shared across threads.
        self._lock = threading.Lock()

    def on(self, event: str, callback: EventCallback) -> None:
        with self._lock:
            self._listeners[event].append(callback)

    def off(self, event: str, callback: EventCallback) -> None:
        with self._lock:
            callbacks = self._listeners.get(event)
            if not callbacks:
                return
            try:
                callbacks.remove(callback)
            except ValueError:
                return
            if not callbacks:
                del self._listeners[event]

    def emit(self, event: str, data: Any) -> int:
        """
        Call every listener registered for ``event`` right now.
        A failing listener is logged and skipped. Returns the number of
        listeners that ran without raising.
        """
        with self._lock:
            callbacks = list(self._listeners.get(event, ()))

        delivered = 0
        for callback in callbacks:
            try:
                callback(data)
                delivered += 1
            except Exception as e:
                logger.error(f"Event callback error for {event}: {e}", exc_info=True)
        return delivered

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, ()))

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        with self._lock:
            if event is None:
                self._listeners.clear()
            else:
                self._listeners.pop(event, None)

    def shutdown(self) -> None:
        with self._lock:
            count = sum(len(v) for v in self._listeners.values())
            self._listeners.clear()
        logger.info(f"Event bus shut down ({count} listeners dropped)")
