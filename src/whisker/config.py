"""Whisker configuration.

WhiskerConfig is the central configuration object, frozen after creation.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Conventional router entry locations, first existing wins
ROUTER_CANDIDATES: tuple[str, ...] = (
    "src/app_router.py",
    "src/router.py",
    "src/app/router.py",
    "app_router.py",
    "router.py",
    "app/router.py",
)

# Modules resolved from the host at execution time instead of being bundled
DEFAULT_EXTERNALS: tuple[str, ...] = (
    "whisker",
    "pydantic",
    "pydantic_core",
    "sqlalchemy",
    "redis",
    "celery",
    "opentelemetry",
    "rich",
)

DEFAULT_WATCH_PATTERNS: tuple[str, ...] = (
    "**/*_controller.py",
    "**/controllers/*.py",
    *ROUTER_CANDIDATES,
)

DEFAULT_IGNORE_DIRS: tuple[str, ...] = (
    ".git",
    "__pycache__",
    ".venv",
    "venv",
    "env",
    "node_modules",
    "dist",
    "build",
    ".mypy_cache",
    ".pytest_cache",
)

INTERACTIVE_ENV = "WHISKER_INTERACTIVE_MODE"


@dataclass(frozen=True, slots=True)
class WhiskerConfig:
    """Configuration for a whisker project.

    Attributes:
        root: Project root. Always resolved to an absolute path on construction.
        output: Directory receiving the generated client artifacts.
        docs: Also generate the OpenAPI document on every cycle.
        docs_output: Directory receiving ``openapi.json``.
        router_candidates: Relative paths tried, in order, to find the router.
        externals: Module name patterns the loader must not bundle.
        watch_patterns: Glob patterns (relative to root) that trigger a cycle.
        ignore_dirs: Directory names never watched.
        interactive: Replace the spinner with plain log lines.
        debug: Print debug lines (dropped events, timings).

    """

    root: Path = field(default_factory=Path.cwd)
    output: Path = field(default_factory=lambda: Path("src"))
    docs: bool = False
    docs_output: Path = field(default_factory=lambda: Path("src/docs"))
    router_candidates: tuple[str, ...] = ROUTER_CANDIDATES
    externals: tuple[str, ...] = DEFAULT_EXTERNALS
    watch_patterns: tuple[str, ...] = DEFAULT_WATCH_PATTERNS
    ignore_dirs: tuple[str, ...] = DEFAULT_IGNORE_DIRS
    interactive: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; keep root comparable.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())

    @property
    def output_path(self) -> Path:
        """Absolute path to the client artifact directory."""
        if self.output.is_absolute():
            return self.output
        return self.root / self.output

    @property
    def docs_output_path(self) -> Path:
        """Absolute path to the OpenAPI output directory."""
        if self.docs_output.is_absolute():
            return self.docs_output
        return self.root / self.docs_output

    @property
    def is_interactive(self) -> bool:
        """Interactive mode from config or the environment."""
        return self.interactive or os.environ.get(INTERACTIVE_ENV) == "true"
