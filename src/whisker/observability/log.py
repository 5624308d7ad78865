"""Session event record.

``EventLog`` keeps the most recent whisker events so a watch session can
be inspected while it runs and summarized when it stops. Old events fall
off the front once ``max_events`` is reached.

The watcher thread and the regeneration worker both write here, so every
read takes a snapshot under the lock and filters outside it.
"""

from __future__ import annotations

import threading
from collections import Counter, deque
from collections.abc import Iterable
from itertools import islice

from whisker.observability.events import WhiskerEvent


def _event_path(event: WhiskerEvent) -> str:
    # CycleProfile carries the file that triggered the cycle instead of a path.
    return getattr(event, "path", None) or getattr(event, "trigger_path", None) or ""


class EventLog:
    """Bounded, thread-safe record of whisker events.

    Args:
        max_events: Number of events kept before the oldest are discarded.

    """

    __slots__ = ("_events", "_lock")

    def __init__(self, max_events: int = 10_000) -> None:
        self._events: deque[WhiskerEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: WhiskerEvent) -> None:
        with self._lock:
            self._events.append(event)

    def extend(self, events: Iterable[WhiskerEvent]) -> None:
        """Record several events under one lock acquisition."""
        with self._lock:
            self._events.extend(events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[WhiskerEvent]:
        """Return up to *limit* matching events, newest first.

        Args:
            event_type: Keep only instances of this event class.
            since_ns: Keep only events stamped at or after this time.
            path: Keep only events whose path contains this substring.
            limit: Maximum number of events returned.

        """
        with self._lock:
            snapshot = tuple(self._events)

        def keep(event: WhiskerEvent) -> bool:
            if event_type is not None and not isinstance(event, event_type):
                return False
            if event.timestamp_ns < since_ns:
                return False
            return path is None or path in _event_path(event)

        return list(islice(filter(keep, reversed(snapshot)), limit))

    def counts(self) -> Counter[str]:
        """Number of retained events per event class name."""
        with self._lock:
            snapshot = tuple(self._events)
        return Counter(type(event).__name__ for event in snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
