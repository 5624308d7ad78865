"""Atomic file writes for published artifacts.

Readers never observe a partially written file: content goes to a
temporary file in the destination directory, which then replaces the
target with ``os.replace``.

``write_all_atomic`` extends this to a group of files that are published
together: every temporary is staged before any target is replaced, and a
replace that fails part-way restores the targets already replaced.
"""

from __future__ import annotations

import os
import tempfile
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class WrittenFile:
    """A file published by ``write_all_atomic``.

    Attributes:
        path: Target path.
        size_bytes: Size of the written content.
        duration_ms: Time spent staging the content.

    """

    path: Path
    size_bytes: int
    duration_ms: float


@dataclass(frozen=True, slots=True)
class _Staged:
    path: Path
    tmp: Path
    size_bytes: int
    duration_ms: float


def write_atomic(path: Path, text: str) -> int:
    """Write *text* (UTF-8) to *path* atomically, creating parent dirs.

    Returns the size in bytes of the written file.

    """
    return write_all_atomic([(path, text)])[0].size_bytes


def write_all_atomic(files: Sequence[tuple[Path, str]]) -> tuple[WrittenFile, ...]:
    """Publish every ``(path, text)`` pair, or none of them.

    Raises:
        OSError: If staging or replacing fails. Targets keep their previous
            content (targets that did not exist stay absent).

    """
    staged: list[_Staged] = []
    try:
        for path, text in files:
            staged.append(_stage(path, text.encode("utf-8")))
        _commit(staged)
    except BaseException:
        for item in staged:
            item.tmp.unlink(missing_ok=True)
        raise
    return tuple(
        WrittenFile(path=item.path, size_bytes=item.size_bytes, duration_ms=item.duration_ms)
        for item in staged
    )


def _stage(path: Path, data: bytes) -> _Staged:
    start = time.perf_counter()
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return _Staged(
        path=path,
        tmp=Path(tmp_name),
        size_bytes=len(data),
        duration_ms=(time.perf_counter() - start) * 1000,
    )


def _commit(staged: Sequence[_Staged]) -> None:
    previous = {item.path: item.path.read_bytes() if item.path.is_file() else None for item in staged}
    replaced: list[Path] = []
    try:
        for item in staged:
            os.replace(item.tmp, item.path)
            replaced.append(item.path)
    except BaseException:
        for path in reversed(replaced):
            _restore(path, previous[path])
        raise


def _restore(path: Path, content: bytes | None) -> None:
    if content is None:
        path.unlink(missing_ok=True)
        return
    backup = _stage(path, content)
    try:
        os.replace(backup.tmp, path)
    except BaseException:
        backup.tmp.unlink(missing_ok=True)
        raise
