"""Whisker application — the public entry points.

The three public functions (generate, watch, docs) load configuration for a
project root, then drive the regeneration pipeline once, continuously, or
for the OpenAPI document only.
"""

import sys
from pathlib import Path

from whisker._errors import DocsError, RouterNotFoundError
from whisker.config_loader import load_config
from whisker.export.artifacts import GeneratedFile, write_openapi
from whisker.loader import compile_and_load
from whisker.pipeline import CycleResult, RegenerationPipeline, locate_router
from whisker.schema.introspector import introspect


def generate(root: str | Path = ".", **kwargs: object) -> CycleResult:
    """Regenerate the client artifacts (and optionally docs) once.

    Args:
        root: Path to the project root directory.
        **kwargs: Override WhiskerConfig fields.

    Raises:
        RouterNotFoundError: If no router entry file exists.
        RouterLoadError: If the router fails to compile, run or export.
        ArtifactError: If the artifacts cannot be written.
        DocsError: If docs are enabled and the OpenAPI step failed. The
            client artifacts are written before this is raised.

    """
    from whisker.banner import print_banner, print_cycle_summary

    config = load_config(Path(root), **kwargs)
    print_banner(
        config, "generate",
        router_path=locate_router(config.root, config.router_candidates),
    )

    result = RegenerationPipeline(config).run()
    print_cycle_summary(result)

    if result.docs_error is not None:
        msg = f"Client artifacts were written, but OpenAPI generation failed: {result.docs_error}"
        raise DocsError(msg) from result.docs_error
    return result


def watch(root: str | Path = ".", **kwargs: object) -> None:
    """Regenerate on every change to the router or its controllers.

    Blocks until interrupted. Cycle failures are reported and the session
    keeps watching.

    Args:
        root: Path to the project root directory.
        **kwargs: Override WhiskerConfig fields.

    """
    from whisker.banner import print_banner
    from whisker.live.session import WatchSession

    config = load_config(Path(root), **kwargs)
    router_path = locate_router(config.root, config.router_candidates)
    warnings: list[str] = []
    if router_path is None:
        warnings.append(
            "No router file yet; generation starts once one of "
            f"{', '.join(config.router_candidates)} exists"
        )
    print_banner(config, "watch", router_path=router_path, warnings=warnings)

    WatchSession(config).run_forever()


def docs(
    root: str | Path = ".",
    *,
    output: str | Path | None = None,
    ui: bool = False,
) -> tuple[GeneratedFile, ...]:
    """Write only the OpenAPI document (and optionally a playground page).

    Args:
        root: Path to the project root directory.
        output: Directory for ``openapi.json`` (default: configured
            ``docs_output``).
        ui: Also write an ``index.html`` API reference page.

    Raises:
        RouterNotFoundError: If no router entry file exists.
        RouterLoadError: If the router fails to compile, run or export.
        DocsError: If the document cannot be generated or written.

    """
    from whisker.banner import print_banner

    config = load_config(Path(root), docs_output=output)
    router_path = locate_router(config.root, config.router_candidates)
    print_banner(config, "docs", router_path=router_path)
    if router_path is None:
        raise RouterNotFoundError(config.router_candidates)

    router = compile_and_load(router_path, config.externals, root=config.root)
    result = introspect(router)
    files = write_openapi(result.schema, config.docs_output_path, ui=ui)

    for generated in files:
        print(f"  Wrote {generated.path}", file=sys.stderr)
    return files
