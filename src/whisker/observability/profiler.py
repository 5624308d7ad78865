"""Cycle profiler — measures per-stage regeneration latency.

Records timing for each stage of a regeneration cycle and emits a
``CycleProfile`` event to the ``EventLog``.

Thread Safety:
    One profiler belongs to one cycle (single writer).  Aggregate queries
    are protected by the underlying ``EventLog`` lock.

"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING

from whisker.observability.events import CycleProfile, now_ns

if TYPE_CHECKING:
    from whisker.observability.log import EventLog

STAGES: tuple[str, ...] = ("load", "introspect", "artifacts", "docs")


@dataclass(slots=True)
class _Timer:
    """Accumulates timing for a named cycle stage."""

    name: str
    _start: float = 0.0
    elapsed_ms: float = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self) -> None:
        if self._start > 0:
            self.elapsed_ms = (time.perf_counter() - self._start) * 1000
            self._start = 0.0


class CycleProfiler:
    """Records per-stage timing for a single regeneration cycle.

    Usage::

        profiler = CycleProfiler(event_log)

        profiler.begin("src/router.py")
        profiler.start("load")
        # ... compile and execute ...
        profiler.stop("load")
        profiler.finish(controller_count=2, action_count=5)

    After ``finish()``, a ``CycleProfile`` event is appended to the log
    and, when verbose, a one-line summary is printed to stderr.

    """

    __slots__ = ("_log", "_t0", "_timers", "_trigger_path", "_verbose")

    def __init__(self, log: EventLog, *, verbose: bool = False) -> None:
        self._log = log
        self._verbose = verbose
        self._trigger_path = ""
        self._t0 = 0.0
        self._timers: dict[str, _Timer] = {name: _Timer(name=name) for name in STAGES}

    def begin(self, trigger_path: str) -> None:
        """Start profiling a new cycle."""
        self._trigger_path = trigger_path
        self._t0 = time.perf_counter()
        for timer in self._timers.values():
            timer.elapsed_ms = 0.0

    def start(self, stage: str) -> None:
        """Start timing a named stage."""
        timer = self._timers.get(stage)
        if timer is not None:
            timer.start()

    def stop(self, stage: str) -> None:
        """Stop timing a named stage."""
        timer = self._timers.get(stage)
        if timer is not None:
            timer.stop()

    def elapsed_ms(self, stage: str) -> float:
        """Return the milliseconds recorded for *stage* (0 if unknown)."""
        timer = self._timers.get(stage)
        return timer.elapsed_ms if timer is not None else 0.0

    def finish(self, *, controller_count: int = 0, action_count: int = 0) -> CycleProfile:
        """Finish profiling and emit the ``CycleProfile`` event.

        Returns the profile for testing / inspection.

        """
        total_ms = (time.perf_counter() - self._t0) * 1000 if self._t0 > 0 else 0.0

        profile = CycleProfile(
            trigger_path=self._trigger_path,
            controller_count=controller_count,
            action_count=action_count,
            load_ms=self._timers["load"].elapsed_ms,
            introspect_ms=self._timers["introspect"].elapsed_ms,
            artifacts_ms=self._timers["artifacts"].elapsed_ms,
            docs_ms=self._timers["docs"].elapsed_ms,
            total_ms=total_ms,
            timestamp_ns=now_ns(),
        )

        self._log.append(profile)

        if self._verbose:
            self._print_summary(profile)

        return profile

    def _print_summary(self, p: CycleProfile) -> None:
        """Print a one-line timing summary to stderr."""
        name = PurePath(p.trigger_path).name or p.trigger_path
        stages = (
            f"load: {p.load_ms:.0f}ms, "
            f"introspect: {p.introspect_ms:.0f}ms, "
            f"artifacts: {p.artifacts_ms:.0f}ms, "
            f"docs: {p.docs_ms:.0f}ms"
        )
        print(
            f"  [{p.total_ms:.0f}ms] {name} -> "
            f"{p.controller_count} controllers, {p.action_count} actions ({stages})",
            file=sys.stderr,
        )


def compute_aggregate_stats(
    log: EventLog,
    *,
    limit: int = 100,
) -> dict:
    """Compute aggregate latency statistics from recent ``CycleProfile`` events.

    Returns a dict with p50, p95, p99, and per-stage averages.

    """
    profiles = log.query(event_type=CycleProfile, limit=limit)
    if not profiles:
        return {"count": 0}

    totals = sorted(p.total_ms for p in profiles)
    count = len(totals)

    def percentile(data: list[float], pct: float) -> float:
        idx = int(len(data) * pct / 100)
        return data[min(idx, len(data) - 1)]

    return {
        "count": count,
        "total_ms": {
            "p50": round(percentile(totals, 50), 1),
            "p95": round(percentile(totals, 95), 1),
            "p99": round(percentile(totals, 99), 1),
            "min": round(totals[0], 1),
            "max": round(totals[-1], 1),
        },
        "avg_by_stage_ms": {
            stage: round(sum(getattr(p, f"{stage}_ms") for p in profiles) / count, 1)
            for stage in STAGES
        },
    }


def session_summary(log: EventLog) -> str:
    """One stderr line describing the cycles recorded in *log*.

    Printed by ``WatchSession.stop()`` in debug mode.

    """
    stats = compute_aggregate_stats(log)
    counts = log.counts()
    count = stats["count"]

    line = f"  Session: {count} {'cycle' if count == 1 else 'cycles'}"
    if count:
        totals = stats["total_ms"]
        line += f" (p50 {totals['p50']:.0f}ms, p95 {totals['p95']:.0f}ms, max {totals['max']:.0f}ms)"
    return f"{line}, {counts['CycleFailed']} failed, {counts['ChangeDropped']} changes skipped"
