"""Cycle diagnostics — render regeneration failures for humans and the log.

Provides two renderings of the same failure:
1. ``format_cycle_error`` — multi-line terminal text: the file, the original
   error type and message, and an indented stack trace.
2. ``error_payload`` — a JSON-ready dict recorded in ``CycleFailed`` events.

Compile failures carry their diagnostics in the message, so no stack trace
is printed for them.
"""

from __future__ import annotations

import traceback
from typing import Any

from whisker._errors import BuildError, RouterLoadError


def _root_error(exc: BaseException) -> BaseException:
    """Return the error that actually describes the failure."""
    if isinstance(exc, RouterLoadError) and exc.original is not None:
        return exc.original
    return exc


def _extract_error_location(exc: BaseException) -> tuple[str, int]:
    """Extract the most relevant filename and line number from an exception."""
    if isinstance(exc, SyntaxError) and exc.filename:
        return exc.filename, exc.lineno or 0

    tb = exc.__traceback__
    if tb is None:
        return "", 0

    # Walk to the innermost frame
    while tb.tb_next is not None:
        tb = tb.tb_next

    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


def _error_file(exc: BaseException) -> str:
    if isinstance(exc, RouterLoadError) and exc.path is not None:
        return str(exc.path)
    filename, _ = _extract_error_location(_root_error(exc))
    return filename


def format_cycle_error(exc: BaseException) -> str:
    """Format a failed cycle as indented terminal text.

    Example::

          Error in /app/src/router.py
          ZeroDivisionError: division by zero
            Traceback (most recent call last):
              ...

    """
    original = _root_error(exc)
    lines: list[str] = []

    filename = _error_file(exc)
    if filename:
        lines.append(f"  Error in {filename}")
    if original is not exc:
        headline = str(exc).partition("\n")[0]
        if headline:
            lines.append(f"  {headline}")

    if isinstance(original, BuildError):
        lines.append(f"  {type(original).__name__}:")
        for diagnostic in original.diagnostics:
            lines.extend(f"    {line}" for line in diagnostic.splitlines())
        return "\n".join(lines)

    message = str(original)
    name = type(original).__name__
    lines.append(f"  {name}: {message}" if message else f"  {name}")
    if original.__traceback__ is not None:
        trace = "".join(traceback.format_tb(original.__traceback__))
        lines.extend(f"    {line}" for line in trace.rstrip().splitlines())
    return "\n".join(lines)


def error_payload(exc: BaseException) -> dict[str, Any]:
    """Return a JSON-ready description of *exc* for the event log."""
    original = _root_error(exc)
    filename, lineno = _extract_error_location(original)
    payload: dict[str, Any] = {
        "type": type(exc).__qualname__,
        "message": str(exc),
        "file": _error_file(exc) or filename,
        "line": lineno,
        "trace": "".join(
            traceback.format_exception(type(original), original, original.__traceback__)
        ),
    }
    if original is not exc:
        payload["original"] = {
            "type": type(original).__qualname__,
            "message": str(original),
        }
    if isinstance(original, BuildError):
        payload["diagnostics"] = list(original.diagnostics)
    return payload
