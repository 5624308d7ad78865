"""Startup banner — mode-aware status output.

Prints a short startup banner naming the router, the output directories and
the active mode.  Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from whisker.config import WhiskerConfig
    from whisker.pipeline import CycleResult


# ---------------------------------------------------------------------------
# ANSI helpers, respecting NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""
_RED = "\033[31m" if _COLOR else ""


# ---------------------------------------------------------------------------
# Mode badges
# ---------------------------------------------------------------------------

_MODE_STYLES: dict[str, tuple[str, str]] = {
    "generate": (_GREEN, "generate"),
    "watch": (_CYAN, "watch"),
    "docs": (_YELLOW, "docs"),
}


def _mode_badge(mode: str) -> str:
    """Return a styled [mode] badge."""
    color, label = _MODE_STYLES.get(mode, (_DIM, mode))
    return f"{color}[{label}]{_RESET}"


def _display(path: Path, config: WhiskerConfig) -> str:
    try:
        return path.relative_to(config.root).as_posix() or "."
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def print_banner(
    config: WhiskerConfig,
    mode: str,
    *,
    router_path: Path | None = None,
    warnings: list[str] | None = None,
) -> None:
    """Print the whisker startup banner to stderr.

    Args:
        config: Resolved WhiskerConfig.
        mode: One of ``"generate"``, ``"watch"``, ``"docs"``.
        router_path: Router entry file, when already located.
        warnings: Optional list of warning messages to display.

    """
    from whisker import __version__

    face = "=^.^="
    header = f"  {_BOLD}{face}{_RESET}  whisker {_DIM}v{__version__}{_RESET}  {_mode_badge(mode)}"

    lines: list[str] = [
        "",
        header,
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    if router_path is not None:
        lines.append(f"  {_DIM}├─{_RESET} router: {_display(router_path, config)}")
    else:
        lines.append(f"  {_DIM}├─{_RESET} router: {_YELLOW}not found{_RESET}")

    if mode != "docs":
        lines.append(f"  {_DIM}├─{_RESET} output: {_DIM}{_display(config.output_path, config)}{_RESET}")
    if config.docs or mode == "docs":
        lines.append(f"  {_DIM}├─{_RESET} openapi: {_DIM}{_display(config.docs_output_path, config)}{_RESET}")

    externals_label = "module" if len(config.externals) == 1 else "modules"
    lines.append(f"  {_DIM}└─{_RESET} {len(config.externals)} externalized {externals_label}")

    if mode == "watch":
        lines.append("")
        style = "interactive" if config.is_interactive else "spinner"
        lines.append(f"  {_DIM}Watching {len(config.watch_patterns)} patterns ({style} mode){_RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")

    print("\n".join(lines), file=sys.stderr)


def print_cycle_summary(result: CycleResult) -> None:
    """Print a one-shot generation summary to stderr."""
    stats = result.stats
    lines = [
        "",
        "─" * 41,
        f"  {_GREEN}✓{_RESET} {stats.controller_count} "
        f"controller{'s' if stats.controller_count != 1 else ''}, "
        f"{stats.action_count} action{'s' if stats.action_count != 1 else ''}",
    ]
    lines.extend(f"  Wrote {f.path}" for f in result.artifacts.files)
    if result.docs_path is not None:
        lines.append(f"  Wrote {result.docs_path}")
    if result.docs_error is not None:
        lines.append(f"  {_RED}✗{_RESET} OpenAPI: {result.docs_error}")
    if result.skipped:
        lines.append(f"  {_YELLOW}!{_RESET} Skipped controllers: {', '.join(result.skipped)}")
    if result.profile is not None:
        lines.append(f"  Done in {result.profile.total_ms:.0f}ms")

    print("\n".join(lines), file=sys.stderr)
