"""Bundler — compile a router entry file and its local imports into one unit.

Starting at the entry file, every ``import`` / ``from ... import`` statement
is followed with ``ast``. Targets that resolve to source under one of the
search roots are compiled into the unit; everything else (the standard
library, installed packages, and any name matching an externalized pattern)
is left for the sandbox resolver to import at execution time.

Nothing touches ``sys.path`` or ``sys.modules`` here: the unit is plain data
(code objects keyed by dotted module name).
"""

from __future__ import annotations

import ast
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from types import CodeType

from whisker._errors import BuildError


@dataclass(frozen=True, slots=True)
class CompiledModule:
    """One module of a compiled unit.

    Attributes:
        name: Dotted module name.
        path: Source file, or the directory of a namespace package.
        code: Compiled module body.
        is_package: Whether the module is a package (has ``__path__``).

    """

    name: str
    path: Path
    code: CodeType
    is_package: bool

    @property
    def package_dir(self) -> Path:
        """Directory searched for submodules of a package."""
        return self.path if self.path.is_dir() else self.path.parent


@dataclass(frozen=True, slots=True)
class CompiledUnit:
    """An entry module plus its local dependency graph, compiled in memory.

    Attributes:
        entry: Dotted name of the entry module.
        entry_path: Absolute path to the entry file.
        modules: Every bundled module keyed by dotted name.
        search_roots: Directories local modules were resolved against.
        externals: Patterns excluded from bundling.

    """

    entry: str
    entry_path: Path
    modules: Mapping[str, CompiledModule]
    search_roots: tuple[Path, ...]
    externals: tuple[str, ...]

    def __contains__(self, name: object) -> bool:
        return name in self.modules


def is_externalized(name: str, patterns: Sequence[str]) -> bool:
    """Whether module *name* matches an externalized pattern.

    A pattern matches its exact name, any submodule of it (``redis`` matches
    ``redis.client``), or any name it matches as a glob (``opentelemetry.*``).

    """
    for pattern in patterns:
        if name == pattern or name.startswith(pattern + "."):
            return True
        if fnmatchcase(name, pattern):
            return True
    return False


def compile_unit(
    entry_path: str | Path,
    externals: Sequence[str] = (),
    *,
    root: Path | None = None,
) -> CompiledUnit:
    """Compile *entry_path* and everything it locally imports.

    Raises:
        BuildError: With every diagnostic found (syntax errors, unreadable
            files, unresolvable relative imports), if there are any.

    """
    project_root = (root or Path.cwd()).resolve()
    entry = (project_root / Path(entry_path)).resolve()
    if not entry.is_file():
        raise BuildError([f"{entry}: entry file not found"])

    entry_name, package_root = _entry_module_name(entry)
    search_roots = _dedupe((package_root, project_root, project_root / "src"))
    patterns = tuple(externals)

    builder = _UnitBuilder(search_roots, patterns)
    builder.add_entry(entry_name, entry)
    builder.run()

    if builder.diagnostics:
        raise BuildError(builder.diagnostics)

    return CompiledUnit(
        entry=entry_name,
        entry_path=entry,
        modules=dict(builder.modules),
        search_roots=search_roots,
        externals=patterns,
    )


def _entry_module_name(entry: Path) -> tuple[str, Path]:
    """Derive the entry's dotted name and the directory its top package lives in.

    ``src/app/router.py`` with ``src/app/__init__.py`` -> ``("app.router", src)``.

    """
    parts = [entry.stem]
    directory = entry.parent
    while (directory / "__init__.py").is_file() and directory.parent != directory:
        parts.append(directory.name)
        directory = directory.parent
    return ".".join(reversed(parts)), directory


def _dedupe(paths: Sequence[Path]) -> tuple[Path, ...]:
    seen: list[Path] = []
    for path in paths:
        if path not in seen and path.is_dir():
            seen.append(path)
    return tuple(seen)


def find_local_module(name: str, roots: Sequence[Path]) -> tuple[Path, bool] | None:
    """Locate *name* under *roots*.

    Returns ``(path, is_package)`` where *path* is the ``.py`` file, the
    package ``__init__.py``, or the directory of a namespace package.

    """
    parts = name.split(".")
    for root in roots:
        base = root.joinpath(*parts)
        init = base / "__init__.py"
        if init.is_file():
            return init, True
        module_file = base.with_name(base.name + ".py")
        if module_file.is_file():
            return module_file, False
        if base.is_dir() and _looks_like_namespace(base):
            return base, True
    return None


def _looks_like_namespace(directory: Path) -> bool:
    return any(directory.glob("*.py")) or any(directory.glob("*/__init__.py"))


class _UnitBuilder:
    """Breadth-first walk over the local import graph."""

    def __init__(self, roots: tuple[Path, ...], externals: tuple[str, ...]) -> None:
        self._roots = roots
        self._externals = externals
        self._queue: deque[tuple[str, Path, bool]] = deque()
        self._queued: set[str] = set()
        self.modules: dict[str, CompiledModule] = {}
        self.diagnostics: list[str] = []

    def add_entry(self, name: str, path: Path) -> None:
        # Parent packages of the entry are part of the unit too.
        parts = name.split(".")
        for i in range(1, len(parts)):
            self._enqueue_local(".".join(parts[:i]))
        self._enqueue(name, path, False)

    def run(self) -> None:
        while self._queue:
            name, path, is_package = self._queue.popleft()
            compiled = self._compile(name, path, is_package)
            if compiled is None:
                continue
            self.modules[name] = compiled

    def _enqueue(self, name: str, path: Path, is_package: bool) -> None:
        if name in self._queued:
            return
        self._queued.add(name)
        self._queue.append((name, path, is_package))

    def _enqueue_local(self, name: str) -> bool:
        """Queue *name* (and its parents) if it is local and not externalized."""
        if name in self._queued:
            return True
        if is_externalized(name, self._externals):
            return False
        found = find_local_module(name, self._roots)
        if found is None:
            return False
        parent = name.rpartition(".")[0]
        if parent and not self._enqueue_local(parent):
            return False
        self._enqueue(name, found[0], found[1])
        return True

    def _compile(self, name: str, path: Path, is_package: bool) -> CompiledModule | None:
        if path.is_dir():
            code = compile("", str(path), "exec", dont_inherit=True)
            return CompiledModule(name=name, path=path, code=code, is_package=True)

        try:
            source = path.read_bytes()
        except OSError as exc:
            self.diagnostics.append(f"{path}: cannot read module {name!r}: {exc}")
            return None

        try:
            tree = ast.parse(source, filename=str(path))
        except SyntaxError as exc:
            self.diagnostics.append(_format_syntax_error(path, exc))
            return None
        except ValueError as exc:
            self.diagnostics.append(f"{path}: {exc}")
            return None

        package = name if is_package else name.rpartition(".")[0]
        self._follow_imports(tree, path, package)

        code = compile(tree, str(path), "exec", dont_inherit=True)
        return CompiledModule(name=name, path=path, code=code, is_package=is_package)

    def _follow_imports(self, tree: ast.Module, path: Path, package: str) -> None:
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    self._enqueue_dotted(alias.name)
            elif isinstance(node, ast.ImportFrom):
                self._follow_import_from(node, path, package)

    def _enqueue_dotted(self, name: str) -> None:
        parts = name.split(".")
        for i in range(1, len(parts) + 1):
            if not self._enqueue_local(".".join(parts[:i])):
                return

    def _follow_import_from(self, node: ast.ImportFrom, path: Path, package: str) -> None:
        location = f"{path}:{node.lineno}"
        if node.level == 0:
            base = node.module or ""
        else:
            if not package:
                self.diagnostics.append(
                    f"{location}: relative import with no known parent package"
                )
                return
            bits = package.split(".")
            if node.level > len(bits):
                self.diagnostics.append(
                    f"{location}: relative import beyond top-level package"
                )
                return
            anchor = ".".join(bits[: len(bits) - node.level + 1])
            base = f"{anchor}.{node.module}" if node.module else anchor

        if is_externalized(base, self._externals):
            return

        if node.level > 0 and not self._enqueue_local(base):
            dots = "." * node.level
            self.diagnostics.append(
                f"{location}: could not resolve '{dots}{node.module or ''}'"
            )
            return
        if node.level == 0:
            self._enqueue_dotted(base)
            if base not in self._queued:
                return

        for alias in node.names:
            if alias.name != "*":
                self._enqueue_local(f"{base}.{alias.name}")


def _format_syntax_error(path: Path, exc: SyntaxError) -> str:
    line = exc.lineno or 0
    col = exc.offset or 0
    message = f"{path}:{line}:{col}: {type(exc).__name__}: {exc.msg}"
    if exc.text:
        message += f"\n    {exc.text.rstrip()}"
    return message
