"""Tests for whisker package exports and metadata."""

import pytest

import whisker


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(whisker.__version__, str)
        assert "0.1.0" in whisker.__version__

    def test_free_threading_declaration(self) -> None:
        assert whisker._Py_mod_gil == 0

    def test_all_exports_resolvable(self) -> None:
        for name in whisker.__all__:
            getattr(whisker, name)

    def test_lazy_exports_are_the_real_objects(self) -> None:
        from whisker.app import generate
        from whisker.router import Router

        assert whisker.generate is generate
        assert whisker.Router is Router

    def test_invalid_attribute_raises(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            whisker.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
