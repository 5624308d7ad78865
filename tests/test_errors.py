"""Tests for whisker._errors."""

from pathlib import Path

from whisker._errors import (
    ArtifactError,
    BuildError,
    ConfigError,
    DocsError,
    RouterLoadError,
    RouterNotFoundError,
    WhiskerError,
)


class TestErrorHierarchy:
    """All whisker errors inherit from WhiskerError."""

    def test_whisker_error_is_exception(self) -> None:
        assert issubclass(WhiskerError, Exception)

    def test_catch_all_whisker_errors(self) -> None:
        """All specific errors are catchable via WhiskerError."""
        for error_cls in (ConfigError, ArtifactError, DocsError):
            try:
                raise error_cls("test")
            except WhiskerError:
                pass

    def test_structured_errors_inherit(self) -> None:
        for error_cls in (BuildError, RouterLoadError, RouterNotFoundError):
            assert issubclass(error_cls, WhiskerError)


class TestBuildError:
    def test_joins_diagnostics(self) -> None:
        exc = BuildError(["a.py:1:1: SyntaxError: bad", "b.py:2: could not resolve '.x'"])
        assert str(exc) == "a.py:1:1: SyntaxError: bad\nb.py:2: could not resolve '.x'"

    def test_diagnostics_are_a_tuple(self) -> None:
        exc = BuildError(iter(["one"]))
        assert exc.diagnostics == ("one",)


class TestRouterLoadError:
    def test_carries_original_and_path(self) -> None:
        original = ZeroDivisionError("division by zero")
        exc = RouterLoadError("boom", original, path=Path("/app/router.py"))
        assert exc.original is original
        assert exc.path == Path("/app/router.py")
        assert str(exc) == "boom"

    def test_original_is_optional(self) -> None:
        exc = RouterLoadError("no router")
        assert exc.original is None
        assert exc.path is None


class TestRouterNotFoundError:
    def test_lists_searched_paths(self) -> None:
        exc = RouterNotFoundError(["src/router.py", "router.py"])
        assert exc.searched == ("src/router.py", "router.py")
        assert "src/router.py, router.py" in str(exc)
