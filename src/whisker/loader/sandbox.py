"""Sandbox — execute a compiled unit in an isolated scope.

Each invocation builds fresh module objects for every bundled module, so no
state leaks from one regeneration cycle into the next. Imports are routed
through a private ``__import__``:

- bundled modules are served from the unit;
- everything else goes to a ``ProjectResolver``, which prefers the project's
  own dependency tree and falls back to the host interpreter's imports.

Externalized packages therefore load once per process (they live in
``sys.modules`` like any other import), which keeps native bindings and
process-wide singletons intact.
"""

from __future__ import annotations

import builtins
import importlib
import importlib.util
import sys
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from importlib.machinery import PathFinder
from pathlib import Path
from types import ModuleType
from typing import Any

from pydantic import BaseModel

from whisker.loader.bundle import CompiledUnit

# Virtualenv directory names checked for a project-local site-packages
_VENV_NAMES = (".venv", "venv", "env")


def discover_dependency_paths(root: Path) -> tuple[Path, ...]:
    """Return the project's own site-packages directories, sorted.

    Looks inside ``.venv``, ``venv`` and ``env`` under *root* for both POSIX
    (``lib/python*/site-packages``) and Windows (``Lib/site-packages``) layouts.

    """
    found: list[Path] = []
    for venv in _VENV_NAMES:
        base = root / venv
        if not base.is_dir():
            continue
        found.extend(sorted(base.glob("lib/python*/site-packages")))
        windows = base / "Lib" / "site-packages"
        if windows.is_dir() and windows not in found:
            found.append(windows)
    return tuple(found)


class ProjectResolver:
    """Resolve non-bundled imports for code running inside the sandbox.

    Lookup order for a top-level package:

    1. ``sys.modules``: anything the host process has already imported.
    2. The project's dependency paths (its virtualenv site-packages, then
       *search_roots*).
    3. The host's normal import system.

    Step 1 means the host's copy wins over the project's. If whisker runs
    with pydantic 2.9 and the project's venv pins 2.7, router code sees 2.9.
    Packages are imported once per process, so loading a second copy would
    give the router model classes that fail ``issubclass`` checks against
    the host's, and would re-initialize native extensions. Run whisker from
    the project's own environment when the versions must match.

    Args:
        root: Project root (used to discover virtualenv site-packages).
        search_roots: Extra directories searched before falling back.

    """

    __slots__ = ("_paths",)

    def __init__(self, root: Path, search_roots: Sequence[Path] = ()) -> None:
        paths = [*discover_dependency_paths(root), *search_roots]
        self._paths = [str(p) for p in paths]

    @property
    def paths(self) -> tuple[str, ...]:
        """Directories searched before the host's own imports."""
        return tuple(self._paths)

    def import_module(self, name: str) -> ModuleType:
        """Import *name*, loading its top-level package from the project if needed.

        A package already in ``sys.modules`` is returned as is, even when the
        project ships a different version of it.

        """
        top = name.partition(".")[0]
        if top not in sys.modules and self._paths:
            self._load_from_project(top)
        return importlib.import_module(name)

    def _load_from_project(self, top: str) -> None:
        spec = PathFinder.find_spec(top, self._paths)
        if spec is None or spec.loader is None:
            return
        module = importlib.util.module_from_spec(spec)
        sys.modules[top] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(top, None)
            raise


class UnitImporter:
    """Per-invocation import machinery for one compiled unit."""

    def __init__(self, unit: CompiledUnit, resolver: ProjectResolver) -> None:
        self._unit = unit
        self._resolver = resolver
        self._modules: dict[str, ModuleType] = {}
        self._builtins = dict(builtins.__dict__)
        self._builtins["__import__"] = self._import

    @property
    def modules(self) -> Mapping[str, ModuleType]:
        """Modules executed so far in this invocation."""
        return self._modules

    def load(self, name: str) -> ModuleType:
        """Execute bundled module *name* (once) and return it."""
        module = self._modules.get(name)
        if module is not None:
            return module

        compiled = self._unit.modules[name]
        parent_name, _, child = name.rpartition(".")
        parent = self.load(parent_name) if parent_name else None

        module = ModuleType(name)
        module.__file__ = str(compiled.path) if not compiled.path.is_dir() else None
        module.__package__ = name if compiled.is_package else parent_name
        if compiled.is_package:
            module.__path__ = [str(compiled.package_dir)]
        module.__dict__["__builtins__"] = self._builtins

        # Registered before execution so circular imports see the partial module.
        self._modules[name] = module
        if parent is not None:
            setattr(parent, child, module)
        sys.modules[name] = module

        exec(compiled.code, module.__dict__)  # noqa: S102
        return module

    def _import(
        self,
        name: str,
        globals: Mapping[str, Any] | None = None,
        locals: Mapping[str, Any] | None = None,
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> ModuleType:
        absolute = _resolve_name(name, globals, level)
        top = absolute.partition(".")[0]

        if top not in self._unit.modules:
            return self._import_external(absolute, fromlist)
        if absolute not in self._unit.modules:
            msg = f"No module named {absolute!r}"
            raise ModuleNotFoundError(msg, name=absolute)

        module = self.load(absolute)
        if not fromlist:
            return self.load(top) if level == 0 else module

        names = [item for item in fromlist if item != "*"]
        if "*" in fromlist:
            names.extend(getattr(module, "__all__", ()))
        for item in names:
            sub = f"{absolute}.{item}"
            if sub in self._unit.modules:
                self.load(sub)
        return module

    def _import_external(self, absolute: str, fromlist: Sequence[str] | None) -> ModuleType:
        module = self._resolver.import_module(absolute)
        if not fromlist:
            return sys.modules[absolute.partition(".")[0]]
        for item in fromlist:
            if item == "*" or hasattr(module, item):
                continue
            try:
                self._resolver.import_module(f"{absolute}.{item}")
            except ModuleNotFoundError:
                # Not a submodule; IMPORT_FROM reports the missing attribute.
                pass
        return module


def _resolve_name(name: str, globals: Mapping[str, Any] | None, level: int) -> str:
    if level == 0:
        return name
    package = (globals or {}).get("__package__") or ""
    if not package:
        msg = "attempted relative import with no known parent package"
        raise ImportError(msg)
    bits = package.rsplit(".", level - 1)
    if len(bits) < level:
        msg = "attempted relative import beyond top-level package"
        raise ImportError(msg)
    base = bits[0]
    return f"{base}.{name}" if name else base


@contextmanager
def _isolated_sys_modules(names: Sequence[str]) -> Iterator[None]:
    """Restore ``sys.modules`` entries for *names* after the block."""
    saved = {name: sys.modules[name] for name in names if name in sys.modules}
    try:
        yield
    finally:
        for name in names:
            sys.modules.pop(name, None)
        sys.modules.update(saved)


def execute_unit(unit: CompiledUnit, resolver: ProjectResolver) -> ModuleType:
    """Execute *unit* and return its entry module.

    Bundled modules appear in ``sys.modules`` only while the unit runs, so
    libraries that resolve ``cls.__module__`` during class creation work;
    previous entries under the same names are restored afterwards.

    """
    importer = UnitImporter(unit, resolver)
    with _isolated_sys_modules(list(unit.modules)):
        entry = importer.load(unit.entry)
        _complete_models(importer.modules.values())
        return entry


def _complete_models(modules: Iterable[ModuleType]) -> None:
    """Rebuild pydantic models whose annotations were deferred.

    A model annotated with a class defined further down its module (common
    with ``from __future__ import annotations``) is left incomplete at class
    creation. Completing it needs its module in ``sys.modules``, so it
    must happen before the unit is unregistered.

    """
    for module in modules:
        for member in list(vars(module).values()):
            if (
                isinstance(member, type)
                and issubclass(member, BaseModel)
                and member.__module__ == module.__name__
            ):
                member.model_rebuild(raise_errors=False)
