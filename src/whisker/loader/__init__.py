"""Module loader — compile a router entry file and execute it in isolation.

    router = compile_and_load("src/router.py", externals=("whisker", "pydantic"))

Compilation failures surface as ``RouterLoadError`` wrapping a
``BuildError``; anything raised while the module runs (or a module without
a usable router export) surfaces as ``RouterLoadError`` wrapping the
original exception.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from whisker._errors import BuildError, RouterLoadError
from whisker.config import DEFAULT_EXTERNALS
from whisker.loader.bundle import CompiledUnit, compile_unit, is_externalized
from whisker.loader.sandbox import ProjectResolver, execute_unit

# Module-level names checked for the router, in order
ROUTER_EXPORTS: tuple[str, ...] = ("AppRouter", "router")

__all__ = [
    "ROUTER_EXPORTS",
    "CompiledUnit",
    "LoadedRouter",
    "ProjectResolver",
    "compile_and_load",
    "compile_unit",
    "execute_unit",
    "is_externalized",
    "load_router",
]


@dataclass(frozen=True, slots=True)
class LoadedRouter:
    """A router obtained from one loader invocation.

    Valid for a single regeneration cycle; never cached across cycles.

    Attributes:
        router: The exported router object.
        path: Absolute path to the entry file.
        unit: The compiled unit the router was executed from.

    """

    router: Any
    path: Path
    unit: CompiledUnit


def compile_and_load(
    entry_path: str | Path,
    externals: Sequence[str] = DEFAULT_EXTERNALS,
    *,
    root: Path | None = None,
) -> Any:
    """Compile, execute and extract the router defined by *entry_path*.

    Args:
        entry_path: Router entry file, relative to *root* or absolute.
        externals: Module name patterns resolved from the host instead of
            being bundled.
        root: Project root (default: current working directory).

    Raises:
        RouterLoadError: On compile failure, runtime failure, or when no
            router with a ``controllers`` mapping is exported.

    """
    return load_router(entry_path, externals, root=root).router


def load_router(
    entry_path: str | Path,
    externals: Sequence[str] = DEFAULT_EXTERNALS,
    *,
    root: Path | None = None,
) -> LoadedRouter:
    """Like ``compile_and_load()`` but also returns the compiled unit."""
    project_root = (root or Path.cwd()).resolve()
    full_path = (project_root / Path(entry_path)).resolve()

    try:
        unit = compile_unit(full_path, externals, root=project_root)
    except BuildError as exc:
        msg = f"Failed to compile the router file {full_path}:\n{exc}"
        raise RouterLoadError(msg, exc, path=full_path) from exc

    resolver = ProjectResolver(project_root, unit.search_roots)
    try:
        module = execute_unit(unit, resolver)
    except (Exception, SystemExit) as exc:
        msg = f"Failed to load router from {full_path}"
        raise RouterLoadError(msg, exc, path=full_path) from exc

    router = _extract_router(module)
    if router is None:
        msg = (
            f"{full_path} was compiled and executed, but exports no router "
            f"(expected one of {', '.join(ROUTER_EXPORTS)} with a 'controllers' mapping)"
        )
        raise RouterLoadError(msg, path=full_path)
    return LoadedRouter(router=router, path=full_path, unit=unit)


def _extract_router(module: ModuleType) -> Any:
    namespace = vars(module)
    for name in ROUTER_EXPORTS:
        candidate = namespace.get(name)
        if candidate is not None:
            return candidate if _has_controllers(candidate) else None
    return module if _has_controllers(module) else None


def _has_controllers(candidate: Any) -> bool:
    if isinstance(candidate, Mapping):
        controllers = candidate.get("controllers")
    else:
        controllers = getattr(candidate, "controllers", None)
    return isinstance(controllers, Mapping)
