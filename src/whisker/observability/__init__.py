"""Observability — event model, event log and cycle profiler.

Every regeneration cycle records what it loaded, introspected and wrote,
how long each stage took, and how it failed.  Events are frozen
dataclasses with nanosecond timestamps, safe to produce from the watcher
thread and the regeneration worker at the same time.

Quick Start:
    >>> from whisker.observability import EventLog, CycleProfile
    >>> log = EventLog()
    >>> # pass ``log`` to RegenerationPipeline / WatchSession
    >>> log.query(event_type=CycleProfile, limit=1)
    []

"""

from whisker.observability.events import (
    ArtifactWritten,
    ChangeDropped,
    CycleFailed,
    CycleProfile,
    RouterLoaded,
    SchemaIntrospected,
    WhiskerEvent,
    now_ns,
)
from whisker.observability.log import EventLog
from whisker.observability.profiler import CycleProfiler, compute_aggregate_stats, session_summary

__all__ = [
    "ArtifactWritten",
    "ChangeDropped",
    "CycleFailed",
    "CycleProfile",
    "CycleProfiler",
    "EventLog",
    "RouterLoaded",
    "SchemaIntrospected",
    "WhiskerEvent",
    "compute_aggregate_stats",
    "now_ns",
    "session_summary",
]
