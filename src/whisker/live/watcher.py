"""File watcher — reports changes to router and controller sources.

Runs ``watchfiles`` in a background thread and forwards every change that
matches one of the configured glob patterns to a callback. Ignored
directories and the generated artifact files are filtered out before the
patterns are consulted, so publishing artifacts never triggers a new cycle.

Patterns are matched against the POSIX path relative to the project root
with shell-style globbing (``*`` also crosses directories). A leading
``**/`` additionally matches files at the root itself, so
``**/*_controller.py`` matches both ``users_controller.py`` and
``src/api/users_controller.py``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Literal

from watchfiles import Change

from whisker.config import DEFAULT_IGNORE_DIRS

type ChangeKind = Literal["created", "modified", "deleted"]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.

    """

    path: Path
    kind: ChangeKind


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def matches_pattern(relative: str, pattern: str) -> bool:
    """Whether the root-relative POSIX path *relative* matches *pattern*."""
    if fnmatchcase(relative, pattern):
        return True
    if pattern.startswith("**/"):
        return fnmatchcase(relative, pattern[3:])
    return False


class FileWatcher:
    """Watches a project tree and reports matching changes.

    Args:
        root: Directory to watch recursively.
        patterns: Glob patterns (relative to *root*) that are reported.
        ignore_dirs: Directory names skipped anywhere in the tree.
        ignore_paths: Files (or directories) never reported.
        on_change: Called from the watcher thread for each matching change.

    """

    def __init__(
        self,
        root: Path,
        patterns: Sequence[str],
        *,
        ignore_dirs: Sequence[str] = DEFAULT_IGNORE_DIRS,
        ignore_paths: Sequence[Path] = (),
        on_change: Callable[[ChangeEvent], object],
    ) -> None:
        self._root = root
        self._patterns = tuple(patterns)
        self._ignore_dirs = frozenset(ignore_dirs)
        self._ignore_paths = tuple(ignore_paths)
        self._on_change = on_change
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def accepts(self, path: Path) -> bool:
        """Whether a change to *path* should be reported."""
        try:
            rel = path.relative_to(self._root)
        except ValueError:
            return False

        if not rel.parts or any(part in self._ignore_dirs for part in rel.parts[:-1]):
            return False
        if any(path == ignored or path.is_relative_to(ignored) for ignored in self._ignore_paths):
            return False

        relative = rel.as_posix()
        return any(matches_pattern(relative, pattern) for pattern in self._patterns)

    def start(self) -> None:
        """Start watching for file changes in a background thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="whisker-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    def _watch_filter(self, change: Change, path: str) -> bool:
        return self.accepts(Path(path))

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and forward matching events."""
        from watchfiles import watch

        for raw_changes in watch(
            self._root,
            watch_filter=self._watch_filter,
            stop_event=self._stop_event,
            debounce=300,
            step=100,
        ):
            for change_type, path_str in sorted(raw_changes, key=lambda c: c[1]):
                kind = _CHANGE_KIND_MAP.get(change_type, "modified")
                self._on_change(ChangeEvent(path=Path(path_str), kind=kind))
