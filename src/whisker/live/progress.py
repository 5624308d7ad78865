"""Progress indicators for the watch session.

Two implementations of the same start/pause/resume/stop/success contract:

- ``SpinnerProgress``: a rich spinner on stderr, paused while a cycle
  prints its own output.
- ``LogProgress``: discrete log lines, for interactive mode where a host UI
  owns the terminal and a spinner would fight it for the stream.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Protocol, TextIO

from rich.console import Console

if TYPE_CHECKING:
    from rich.status import Status

DEFAULT_MESSAGE = "Watching for changes..."


class Progress(Protocol):
    """Contract every progress indicator implements."""

    def start(self, message: str | None = None) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def stop(self) -> None: ...

    def success(self, message: str) -> None: ...


class SpinnerProgress:
    """Spinner rendered with ``rich`` on stderr.

    ``pause()`` takes the spinner off screen; ``resume()`` brings it back
    only if it was running when paused.

    """

    def __init__(self, message: str = DEFAULT_MESSAGE, *, console: Console | None = None) -> None:
        self._console = console if console is not None else Console(stderr=True)
        self._message = message
        self._status: Status | None = None
        self._paused = False

    @property
    def is_spinning(self) -> bool:
        return self._status is not None

    def start(self, message: str | None = None) -> None:
        if message is not None:
            self._message = message
        self._paused = False
        if self._status is None:
            self._status = self._console.status(self._message, spinner="dots")
            self._status.start()
        else:
            self._status.update(self._message)

    def pause(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
            self._paused = True

    def resume(self) -> None:
        if self._paused:
            self.start()

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        self._paused = False

    def success(self, message: str) -> None:
        self._console.print(f"  [green]✓[/green] {message}", highlight=False)


class LogProgress:
    """Plain-line progress for interactive mode."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _print(self, line: str) -> None:
        print(line, file=self._stream if self._stream is not None else sys.stderr)

    def start(self, message: str | None = None) -> None:
        self._print(f"  {message or DEFAULT_MESSAGE}")

    def pause(self) -> None:
        pass

    def resume(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def success(self, message: str) -> None:
        self._print(f"  ✓ {message}")
