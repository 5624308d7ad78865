"""Export — generated client artifacts and the OpenAPI document."""

from whisker.export.artifacts import (
    ArtifactGenerator,
    GeneratedFile,
    GenerationResult,
    generated_paths,
    write_openapi,
)
from whisker.export.openapi import OpenAPIGenerator, generate_openapi, render_playground
from whisker.export.writer import write_atomic

__all__ = [
    "ArtifactGenerator",
    "GeneratedFile",
    "GenerationResult",
    "OpenAPIGenerator",
    "generate_openapi",
    "generated_paths",
    "render_playground",
    "write_atomic",
    "write_openapi",
]
