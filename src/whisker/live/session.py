"""Watch session — keeps generated artifacts in sync while source changes.

Lifecycle::

    idle -> loading-router -> generating-artifacts -> (generating-docs) -> idle

A failure in any stage is reported and the session returns to ``idle``;
the watch loop itself never terminates on a cycle failure.

At most one cycle runs at a time. A file event arriving while a cycle is
in flight is dropped, not queued: the loader always re-reads from disk, so
the next event picks up the latest state. Accepted cycles run on a single
background worker so event delivery is never blocked by a slow compile.

Shutdown is explicit: hosts call ``stop()`` from their own lifecycle hooks
(``run_forever()`` does so on ``KeyboardInterrupt``).
"""

from __future__ import annotations

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from whisker.diagnostics import format_cycle_error
from whisker.export.artifacts import generated_paths
from whisker.observability.events import ChangeDropped, now_ns
from whisker.observability.log import EventLog
from whisker.observability.profiler import session_summary
from whisker.pipeline import RegenerationPipeline
from whisker.live.progress import LogProgress, SpinnerProgress
from whisker.live.watcher import FileWatcher

if TYPE_CHECKING:
    from whisker._types import SessionState
    from whisker.config import WhiskerConfig
    from whisker.pipeline import CycleResult
    from whisker.live.progress import Progress
    from whisker.live.watcher import ChangeEvent

_STAGE_LABELS: dict[str, str] = {
    "loading-router": "Loading router...",
    "generating-artifacts": "Generating client artifacts...",
    "generating-docs": "Generating OpenAPI document...",
}


class WatchSession:
    """Owns the file subscriptions, the single-flight guard and the indicator.

    Args:
        config: Frozen whisker configuration.
        pipeline: Pipeline run for each cycle (built from *config* if omitted).
        progress: Progress indicator (a spinner, or plain lines in
            interactive mode, if omitted).
        log: Event log (shared with the pipeline it builds).

    """

    def __init__(
        self,
        config: WhiskerConfig,
        *,
        pipeline: RegenerationPipeline | None = None,
        progress: Progress | None = None,
        log: EventLog | None = None,
    ) -> None:
        self._config = config
        self._log = log if log is not None else EventLog()
        self._pipeline = pipeline if pipeline is not None else RegenerationPipeline(
            config, log=self._log,
        )
        if progress is None:
            progress = LogProgress() if config.is_interactive else SpinnerProgress()
        self._progress = progress

        self._lock = threading.Lock()
        self._generating = False
        self._idle = threading.Event()
        self._idle.set()
        self._stopped = threading.Event()
        self._state: SessionState = "idle"
        self._started = False
        self._closed = False

        self._executor: ThreadPoolExecutor | None = None
        self._watcher: FileWatcher | None = None
        self._last_result: CycleResult | None = None
        self._last_error: BaseException | None = None

    # -- Properties ----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Current lifecycle stage."""
        return self._state

    @property
    def generating(self) -> bool:
        """Whether a cycle is in flight."""
        return self._generating

    @property
    def log(self) -> EventLog:
        return self._log

    @property
    def last_result(self) -> CycleResult | None:
        """Result of the most recent successful cycle."""
        return self._last_result

    @property
    def last_error(self) -> BaseException | None:
        """Error of the most recent cycle, cleared by the next success."""
        return self._last_error

    # -- Lifecycle -----------------------------------------------------------

    def start(self) -> CycleResult | None:
        """Subscribe to file events, regenerate once, then start the indicator.

        Returns the result of the initial cycle (None if it failed).

        """
        with self._lock:
            if self._started or self._closed:
                return self._last_result
            self._started = True

        config = self._config
        self._watcher = FileWatcher(
            config.root,
            config.watch_patterns,
            ignore_dirs=config.ignore_dirs,
            ignore_paths=generated_paths(config),
            on_change=self.handle_change,
        )
        self._watcher.start()

        result = self.regenerate()
        self._progress.start()
        return result

    def regenerate(self, trigger: Path | None = None) -> CycleResult | None:
        """Run one cycle synchronously, unless one is already in flight.

        Returns the cycle result, or None if the cycle failed or was skipped.

        """
        if not self._try_acquire():
            return None
        try:
            return self._cycle(trigger)
        finally:
            self._release()

    def handle_change(self, event: ChangeEvent) -> bool:
        """React to a file event. Returns True if a cycle was scheduled."""
        if self._closed:
            return False

        if not self._try_acquire():
            self._log.append(ChangeDropped(
                path=str(event.path),
                kind=event.kind,
                timestamp_ns=now_ns(),
            ))
            if self._config.debug:
                print(f"  Skipped {event.path.name}: regeneration in progress", file=sys.stderr)
            return False

        print(f"  File {event.kind}: {self._display_path(event.path)}", file=sys.stderr)
        try:
            self._worker().submit(self._run_scheduled, event.path)
        except RuntimeError:
            # Executor already shut down by stop().
            self._release()
            return False
        return True

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no cycle is in flight. Returns False on timeout."""
        return self._idle.wait(timeout)

    def run_forever(self) -> None:
        """Start the session and block until ``stop()`` or Ctrl+C."""
        self.start()
        try:
            while not self._stopped.wait(0.5):
                pass
        except KeyboardInterrupt:
            print("\n  Shutting down...", file=sys.stderr)
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop subscriptions, the worker and the indicator. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._progress.stop()
        if self._config.debug:
            print(session_summary(self._log), file=sys.stderr)
        self._stopped.set()

    # -- Internals -----------------------------------------------------------

    def _try_acquire(self) -> bool:
        with self._lock:
            if self._generating:
                return False
            self._generating = True
            self._idle.clear()
            return True

    def _release(self) -> None:
        with self._lock:
            self._generating = False
            self._state = "idle"
            self._idle.set()

    def _worker(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                msg = "watch session is stopped"
                raise RuntimeError(msg)
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="whisker-regen",
                )
            return self._executor

    def _run_scheduled(self, trigger: Path) -> None:
        try:
            self._cycle(trigger)
        finally:
            self._release()

    def _cycle(self, trigger: Path | None) -> CycleResult | None:
        self._progress.pause()
        try:
            result = self._pipeline.run(self._enter_stage, trigger=trigger)
        except Exception as exc:
            self._last_error = exc
            print(format_cycle_error(exc), file=sys.stderr)
            print("  Waiting for the next change...", file=sys.stderr)
            return None
        else:
            self._last_result = result
            self._last_error = result.docs_error
            self._progress.success(
                f"Generated {result.stats.controller_count} controllers, "
                f"{result.stats.action_count} actions"
            )
            return result
        finally:
            self._state = "idle"
            self._progress.resume()

    def _enter_stage(self, stage: SessionState) -> None:
        self._state = stage
        if self._config.is_interactive or self._config.debug:
            print(f"  {_STAGE_LABELS.get(stage, stage)}", file=sys.stderr)

    def _display_path(self, path: Path) -> str:
        try:
            return path.relative_to(self._config.root).as_posix()
        except ValueError:
            return str(path)
