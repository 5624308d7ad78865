"""Watch mode — file watcher, progress indicators and the watch session."""

from whisker.live.progress import LogProgress, Progress, SpinnerProgress
from whisker.live.session import WatchSession
from whisker.live.watcher import ChangeEvent, FileWatcher, matches_pattern

__all__ = [
    "ChangeEvent",
    "FileWatcher",
    "LogProgress",
    "Progress",
    "SpinnerProgress",
    "WatchSession",
    "matches_pattern",
]
