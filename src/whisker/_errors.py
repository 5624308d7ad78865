"""Whisker error hierarchy.

All whisker-specific errors inherit from WhiskerError for easy catching.
"""

from collections.abc import Sequence
from pathlib import Path


class WhiskerError(Exception):
    """Base error for all whisker operations."""


class ConfigError(WhiskerError):
    """Invalid or missing configuration."""


class BuildError(WhiskerError):
    """The router entry module or one of its local imports failed to compile.

    Attributes:
        diagnostics: One message per problem found, in discovery order.

    """

    def __init__(self, diagnostics: Sequence[str]) -> None:
        self.diagnostics = tuple(diagnostics)
        super().__init__("\n".join(self.diagnostics))


class RouterLoadError(WhiskerError):
    """The router could not be compiled, executed or extracted.

    Attributes:
        original: The underlying error (a BuildError for compile failures,
            the raised exception for runtime failures), or None when the
            module ran but exported no usable router.
        path: The router entry file, when known.

    """

    def __init__(
        self,
        message: str,
        original: BaseException | None = None,
        *,
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.original = original
        self.path = path


class RouterNotFoundError(WhiskerError):
    """None of the conventional router entry paths exist."""

    def __init__(self, searched: Sequence[str]) -> None:
        self.searched = tuple(searched)
        super().__init__(
            "No router file found. Searched: " + ", ".join(self.searched)
        )


class ArtifactError(WhiskerError):
    """Writing generated client artifacts failed."""


class DocsError(WhiskerError):
    """Generating or writing the OpenAPI document failed."""
