"""Event model for regeneration-cycle observability.

Every stage of a regeneration cycle (and every file event dropped by the
single-flight guard) is recorded as an event in the ``EventLog``.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Any, Literal


# ---------------------------------------------------------------------------
# Pipeline events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RouterLoaded:
    """The router entry file was compiled and executed.

    Attributes:
        path: Absolute path to the router entry file.
        module_count: Number of modules bundled into the compiled unit.
        duration_ms: Time spent compiling and executing in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    module_count: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SchemaIntrospected:
    """A loaded router was introspected.

    Attributes:
        path: Router entry file the schema came from.
        controller_count: Controllers in the schema.
        action_count: Actions across all controllers.
        skipped: Keys of controllers skipped as malformed.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    controller_count: int
    action_count: int
    skipped: tuple[str, ...]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ArtifactWritten:
    """A generated file was published.

    Attributes:
        path: Absolute path to the written file.
        kind: Category of the file.
        size_bytes: Size of the written file in bytes.
        duration_ms: Time taken to write it.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    kind: Literal["client", "schema", "openapi", "playground"]
    size_bytes: int
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Cycle outcome events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CycleProfile:
    """Per-stage timing for one regeneration cycle.

    Attributes:
        trigger_path: File that triggered the cycle (router path on startup).
        controller_count: Controllers generated.
        action_count: Actions generated.
        load_ms: Compile + execute time.
        introspect_ms: Introspection time.
        artifacts_ms: Artifact render + write time.
        docs_ms: OpenAPI generation time (0 when disabled).
        total_ms: End-to-end wall-clock time.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    controller_count: int
    action_count: int
    load_ms: float
    introspect_ms: float
    artifacts_ms: float
    docs_ms: float
    total_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class CycleFailed:
    """A regeneration cycle (or its optional docs step) failed.

    Attributes:
        path: File the error points at, if known.
        stage: Stage that was running when the error occurred.
        error: JSON-ready error payload (type, message, location, trace).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    stage: str
    error: dict[str, Any]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ChangeDropped:
    """A file event arrived while a cycle was in flight and was dropped.

    Attributes:
        path: Absolute path of the changed file.
        kind: Type of filesystem change.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    kind: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type WhiskerEvent = (
    RouterLoaded
    | SchemaIntrospected
    | ArtifactWritten
    | CycleProfile
    | CycleFailed
    | ChangeDropped
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
