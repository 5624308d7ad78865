"""Artifact generator — write the client-surface files for a router.

Renders every file in memory first, then publishes them as one group: all
contents are staged before any target is replaced, and a failed replace
restores the targets already replaced. A failed cycle therefore leaves the
previously published artifacts untouched.

Outputs (in ``config.output_path``):

- ``router_schema.py``: importable client surface with ``ROUTER_SCHEMA``
  and ``OPERATIONS``.
- ``router_schema.json``: the same schema as JSON.
"""

from __future__ import annotations

import json
import pprint
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from whisker._errors import ArtifactError, DocsError
from whisker.export.openapi import generate_openapi, join_path, render_playground
from whisker.export.writer import write_all_atomic

if TYPE_CHECKING:
    from collections.abc import Mapping

    from whisker.config import WhiskerConfig
    from whisker.schema.introspector import (
        IntrospectedSchema,
        IntrospectionResult,
        IntrospectionStats,
    )

SCHEMA_MODULE = "router_schema.py"
SCHEMA_JSON = "router_schema.json"
OPENAPI_JSON = "openapi.json"
PLAYGROUND_HTML = "index.html"

type ArtifactKind = Literal["client", "schema", "openapi", "playground"]


@dataclass(frozen=True, slots=True)
class GeneratedFile:
    """Record of a single file written during generation.

    Attributes:
        path: Absolute filesystem path to the written file.
        kind: Category of the generated file.
        size_bytes: Size of the written file in bytes.
        duration_ms: Time taken to write this file.

    """

    path: Path
    kind: ArtifactKind
    size_bytes: int
    duration_ms: float


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Aggregate result of one artifact generation.

    Attributes:
        files: All files written.
        stats: Controller and action counts of the generated schema.
        duration_ms: Total wall-clock time for render + write.
        output_dir: Absolute path to the output directory.

    """

    files: tuple[GeneratedFile, ...]
    stats: IntrospectionStats
    duration_ms: float
    output_dir: Path


class ArtifactGenerator:
    """Generates the client artifacts for an introspected router.

    Args:
        config: Frozen whisker configuration (supplies the output directory).

    """

    def __init__(self, config: WhiskerConfig) -> None:
        self._config = config

    def generate(
        self,
        result: IntrospectionResult,
        *,
        source: Path | None = None,
    ) -> GenerationResult:
        """Render and write every artifact for *result*.

        Args:
            result: Output of ``introspect()``.
            source: Router entry file, named in the generated header.

        Raises:
            ArtifactError: If any file cannot be written.

        """
        start = time.perf_counter()
        output_dir = self._config.output_path

        data = _json_ready(result.schema.to_dict())
        rendered: list[tuple[str, ArtifactKind, str]] = [
            (SCHEMA_MODULE, "client", render_client_module(data, self._source_label(source))),
            (SCHEMA_JSON, "schema", json.dumps(data, indent=2) + "\n"),
        ]

        files = _publish(
            [(output_dir / name, kind, text) for name, kind, text in rendered],
            ArtifactError,
        )

        return GenerationResult(
            files=files,
            stats=result.stats,
            duration_ms=(time.perf_counter() - start) * 1000,
            output_dir=output_dir,
        )

    def _source_label(self, source: Path | None) -> str:
        if source is None:
            return "<unknown>"
        try:
            return source.relative_to(self._config.root).as_posix()
        except ValueError:
            return str(source)


def render_client_module(data: Mapping[str, Any], source: str) -> str:
    """Render the importable client-surface module for serialized *data*."""
    operations: dict[str, tuple[str, str]] = {}
    for controller_key, controller in data.get("controllers", {}).items():
        for action_key, action in controller.get("actions", {}).items():
            path = join_path(controller.get("path", ""), action.get("path", ""))
            operations[f"{controller_key}.{action_key}"] = (action.get("method", "GET"), path)

    schema_literal = pprint.pformat(dict(data), indent=1, width=88, sort_dicts=False)
    operations_literal = pprint.pformat(operations, indent=1, width=88, sort_dicts=False)
    return (
        f"# Generated by whisker from {source}. Do not edit.\n"
        "# Regenerated on every change to the router; edits here are overwritten.\n"
        "\n"
        f"ROUTER_SCHEMA = {schema_literal}\n"
        "\n"
        f"OPERATIONS = {operations_literal}\n"
    )


def write_openapi(
    schema: IntrospectedSchema,
    directory: Path,
    *,
    ui: bool = False,
) -> tuple[GeneratedFile, ...]:
    """Generate the OpenAPI document for *schema* and write it to *directory*.

    Writes ``openapi.json`` and, with *ui*, an ``index.html`` playground
    that loads it.

    Raises:
        DocsError: If the document cannot be generated or written.

    """
    try:
        document = _json_ready(generate_openapi(schema))
    except Exception as exc:
        msg = f"Failed to generate the OpenAPI document: {exc}"
        raise DocsError(msg) from exc

    pending: list[tuple[Path, ArtifactKind, str]] = [
        (directory / OPENAPI_JSON, "openapi", json.dumps(document, indent=2) + "\n"),
    ]
    if ui:
        title = document.get("info", {}).get("title") or "API Reference"
        page = render_playground(f"./{OPENAPI_JSON}", title=title)
        pending.append((directory / PLAYGROUND_HTML, "playground", page))
    return _publish(pending, DocsError)


def _json_ready(data: Any) -> Any:
    """Normalize *data* to plain JSON types (tuples to lists, unknowns to str)."""
    return json.loads(json.dumps(data, default=str))


def _publish(
    pending: list[tuple[Path, ArtifactKind, str]],
    error: type[ArtifactError] | type[DocsError],
) -> tuple[GeneratedFile, ...]:
    """Write *pending* files as one group; none are replaced if any fails."""
    try:
        written = write_all_atomic([(path, text) for path, _, text in pending])
    except OSError as exc:
        names = ", ".join(path.name for path, _, _ in pending)
        msg = f"Failed to write {names} in {pending[0][0].parent}: {exc}"
        raise error(msg) from exc
    return tuple(
        GeneratedFile(
            path=item.path,
            kind=kind,
            size_bytes=item.size_bytes,
            duration_ms=item.duration_ms,
        )
        for item, (_, kind, _) in zip(written, pending, strict=True)
    )


def generated_paths(config: WhiskerConfig) -> tuple[Path, ...]:
    """Every file the artifact and docs steps may write for *config*."""
    output_dir = config.output_path
    docs_dir = config.docs_output_path
    return (
        output_dir / SCHEMA_MODULE,
        output_dir / SCHEMA_JSON,
        docs_dir / OPENAPI_JSON,
        docs_dir / PLAYGROUND_HTML,
    )
