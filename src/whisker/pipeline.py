"""Regeneration pipeline — one full cycle from router source to written files.

Orchestrates a cycle:
    1. Locate the router entry among the conventional candidate paths
    2. Compile and execute it (``whisker.loader``)
    3. Introspect the loaded router (``whisker.schema``)
    4. Write the client artifacts (``whisker.export.artifacts``)
    5. Optionally write the OpenAPI document

Steps 1-4 form one failure domain: any error propagates and nothing new is
published. Step 5 is independent: its failure is reported and returned in
``CycleResult.docs_error`` while the artifacts from step 4 stay written.

Shared by one-shot generation and the watch session.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from whisker._errors import DocsError, RouterNotFoundError
from whisker.config import ROUTER_CANDIDATES
from whisker.diagnostics import error_payload
from whisker.export.artifacts import ArtifactGenerator, GeneratedFile, write_openapi
from whisker.loader import load_router
from whisker.observability.events import (
    ArtifactWritten,
    CycleFailed,
    RouterLoaded,
    SchemaIntrospected,
    now_ns,
)
from whisker.observability.log import EventLog
from whisker.observability.profiler import CycleProfiler
from whisker.schema.introspector import introspect

if TYPE_CHECKING:
    from whisker._types import SessionState, StageCallback
    from whisker.config import WhiskerConfig
    from whisker.export.artifacts import GenerationResult
    from whisker.observability.events import CycleProfile
    from whisker.schema.introspector import IntrospectionResult, IntrospectionStats


def locate_router(root: Path, candidates: Sequence[str] = ROUTER_CANDIDATES) -> Path | None:
    """Return the first existing router entry under *root*, or None."""
    for candidate in candidates:
        path = root / candidate
        if path.is_file():
            return path
    return None


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Outcome of one successful regeneration cycle.

    Attributes:
        router_path: Router entry file that was loaded.
        stats: Controller and action counts.
        artifacts: Files written by the artifact generator.
        docs_path: Written ``openapi.json``, or None when docs are disabled
            or failed.
        docs_error: The OpenAPI failure, if the optional docs step failed.
        profile: Per-stage timings for the cycle.
        skipped: Controllers skipped by the introspector.

    """

    router_path: Path
    stats: IntrospectionStats
    artifacts: GenerationResult
    docs_path: Path | None = None
    docs_error: DocsError | None = None
    profile: CycleProfile | None = None
    skipped: tuple[str, ...] = ()


class RegenerationPipeline:
    """Runs regeneration cycles for one project.

    Holds no state between cycles apart from the event log: every cycle
    re-reads the router from disk and rebuilds its object graph.

    Args:
        config: Frozen whisker configuration.
        log: Event log receiving cycle events (a private one if omitted).

    """

    def __init__(self, config: WhiskerConfig, *, log: EventLog | None = None) -> None:
        self._config = config
        self._log = log if log is not None else EventLog()
        self._artifacts = ArtifactGenerator(config)

    @property
    def log(self) -> EventLog:
        """Event log this pipeline records into."""
        return self._log

    def run(
        self,
        on_stage: StageCallback | None = None,
        *,
        trigger: Path | None = None,
    ) -> CycleResult:
        """Run one full cycle.

        Args:
            on_stage: Called with each stage name as the cycle enters it.
            trigger: File whose change caused the cycle (for profiling).

        Raises:
            RouterNotFoundError: If no router entry file exists.
            RouterLoadError: If the router fails to compile, run or export.
            ArtifactError: If the client artifacts cannot be written.

        """
        config = self._config
        router_path = locate_router(config.root, config.router_candidates)
        if router_path is None:
            exc = RouterNotFoundError(config.router_candidates)
            self._record_failure(exc, "loading-router", config.root)
            raise exc

        profiler = CycleProfiler(self._log, verbose=config.debug)
        profiler.begin(str(trigger or router_path))
        stage: SessionState = "loading-router"

        try:
            self._enter(on_stage, stage)
            profiler.start("load")
            loaded = load_router(router_path, config.externals, root=config.root)
            profiler.stop("load")
            self._log.append(RouterLoaded(
                path=str(router_path),
                module_count=len(loaded.unit.modules),
                duration_ms=profiler.elapsed_ms("load"),
                timestamp_ns=now_ns(),
            ))

            profiler.start("introspect")
            result = introspect(loaded.router)
            profiler.stop("introspect")
            self._log.append(SchemaIntrospected(
                path=str(router_path),
                controller_count=result.stats.controller_count,
                action_count=result.stats.action_count,
                skipped=result.skipped,
                timestamp_ns=now_ns(),
            ))

            stage = "generating-artifacts"
            self._enter(on_stage, stage)
            profiler.start("artifacts")
            artifacts = self._artifacts.generate(result, source=router_path)
            profiler.stop("artifacts")
            self._record_files(artifacts.files)
        except Exception as exc:
            self._record_failure(exc, stage, router_path)
            raise

        docs_path, docs_error = self._generate_docs(result, on_stage, profiler)

        profile = profiler.finish(
            controller_count=result.stats.controller_count,
            action_count=result.stats.action_count,
        )
        return CycleResult(
            router_path=router_path,
            stats=result.stats,
            artifacts=artifacts,
            docs_path=docs_path,
            docs_error=docs_error,
            profile=profile,
            skipped=result.skipped,
        )

    def _generate_docs(
        self,
        result: IntrospectionResult,
        on_stage: StageCallback | None,
        profiler: CycleProfiler,
    ) -> tuple[Path | None, DocsError | None]:
        if not self._config.docs:
            return None, None

        self._enter(on_stage, "generating-docs")
        profiler.start("docs")
        try:
            files = write_openapi(result.schema, self._config.docs_output_path)
        except DocsError as exc:
            print(f"  OpenAPI generation failed: {exc}", file=sys.stderr)
            self._record_failure(exc, "generating-docs", self._config.docs_output_path)
            return None, exc
        finally:
            profiler.stop("docs")

        self._record_files(files)
        return files[0].path, None

    def _enter(self, on_stage: StageCallback | None, stage: SessionState) -> None:
        if on_stage is not None:
            on_stage(stage)

    def _record_files(self, files: Sequence[GeneratedFile]) -> None:
        self._log.extend([
            ArtifactWritten(
                path=str(f.path),
                kind=f.kind,
                size_bytes=f.size_bytes,
                duration_ms=f.duration_ms,
                timestamp_ns=now_ns(),
            )
            for f in files
        ])

    def _record_failure(self, exc: BaseException, stage: str, path: Path) -> None:
        self._log.append(CycleFailed(
            path=str(getattr(exc, "path", None) or path),
            stage=stage,
            error=error_payload(exc),
            timestamp_ns=now_ns(),
        ))
