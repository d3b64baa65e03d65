"""
Lesson event bus.

The engine announces hand presence, rejected frames and lesson progress
here; a presentation layer, a replay log or a test subscribes. Dispatch
is synchronous, in the emitting thread, so a handler sees the engine in
the state that produced the event.

Usage:
    bus = EventBus()
    bus.subscribe(Events.LETTER_CONFIRMED, show_checkmark)
    bus.emit(Events.LETTER_CONFIRMED, letter="D", index=0, state=state)
"""

import time
import logging
import threading
from collections import defaultdict, deque
from typing import Callable, Dict, List, NamedTuple

logger = logging.getLogger(__name__)


class _Listener(NamedTuple):
    priority: int
    callback: Callable


class EventRecord(NamedTuple):
    """One emitted event as kept in the bus history."""
    event: str
    time: float
    fields: tuple
    delivered: int


def _callback_name(callback: Callable) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Priority-ordered publish/subscribe bus, one per engine.

    A handler that raises is logged and skipped; the remaining handlers
    and the frame that emitted the event carry on.
    """

    def __init__(self, max_history: int = 100):
        self._listeners: Dict[str, List[_Listener]] = defaultdict(list)
        self._lock = threading.Lock()
        self._history = deque(maxlen=max_history)
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register ``callback(**fields)`` for ``event_name``.

        Higher ``priority`` runs first; equal priorities keep
        subscription order.
        """
        with self._lock:
            listeners = self._listeners[event_name]
            listeners.append(_Listener(priority, callback))
            listeners.sort(key=lambda listener: -listener.priority)
        logger.debug("Subscribed %s to '%s' (priority=%d)",
                     _callback_name(callback), event_name, priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        with self._lock:
            self._listeners[event_name] = [
                listener for listener in self._listeners[event_name]
                if listener.callback is not callback
            ]

    def emit(self, event_name: str, **fields) -> int:
        """Deliver an event to its listeners.

        Returns:
            Number of handlers that ran without raising
        """
        if not self._enabled:
            return 0

        with self._lock:
            listeners = list(self._listeners.get(event_name, ()))

        delivered = 0
        for listener in listeners:
            try:
                listener.callback(**fields)
                delivered += 1
            except Exception as e:
                logger.error("Handler %s failed on '%s': %s",
                             _callback_name(listener.callback), event_name, e)

        self._history.append(EventRecord(event_name, time.time(), tuple(fields), delivered))
        return delivered

    def clear(self, event_name: str = None):
        """Drop all listeners, or only those of ``event_name``."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    def disable(self):
        self._enabled = False

    def enable(self):
        self._enabled = True

    @property
    def registered_events(self) -> list:
        with self._lock:
            return [name for name, listeners in self._listeners.items() if listeners]

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(listeners) for listeners in self._listeners.values())

    def get_history(self, last_n: int = 10) -> List[EventRecord]:
        """Most recent events, oldest first."""
        return list(self._history)[-last_n:]


class Events:
    """Event names emitted by the engine and lesson controller."""

    # Per-frame
    HAND_DETECTED = "hand_detected"      # handedness
    HAND_LOST = "hand_lost"
    FRAME_REJECTED = "frame_rejected"    # reason

    # Lesson progress
    LESSON_STARTED = "lesson_started"        # name, state
    LETTER_CONFIRMED = "letter_confirmed"    # letter, index, state
    LETTER_SKIPPED = "letter_skipped"        # letter, index, state
    LESSON_COMPLETED = "lesson_completed"    # name, state
    LESSON_RESET = "lesson_reset"            # previous, state
