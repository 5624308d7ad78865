"""Tests for whisker.diagnostics — rendering cycle failures."""

from __future__ import annotations

import json
from pathlib import Path

from whisker._errors import BuildError, RouterLoadError, RouterNotFoundError
from whisker.diagnostics import _extract_error_location, error_payload, format_cycle_error


def _raise_runtime() -> ZeroDivisionError:
    try:
        1 / 0  # noqa: B018
    except ZeroDivisionError as exc:
        return exc
    raise AssertionError("unreachable")


def _wrapped_runtime() -> RouterLoadError:
    return RouterLoadError(
        "Failed to load router from /app/src/router.py",
        _raise_runtime(),
        path=Path("/app/src/router.py"),
    )


def _wrapped_build() -> RouterLoadError:
    build = BuildError([
        "/app/src/router.py:3:9: invalid syntax",
        "/app/src/users_controller.py: cannot resolve import '.missing'",
    ])
    return RouterLoadError(
        "Failed to compile the router file /app/src/router.py:\n" + str(build),
        build,
        path=Path("/app/src/router.py"),
    )


class TestExtractErrorLocation:
    def test_syntax_error_uses_its_own_location(self) -> None:
        exc = SyntaxError("invalid syntax", ("/app/router.py", 7, 3, "x ="))
        assert _extract_error_location(exc) == ("/app/router.py", 7)

    def test_innermost_traceback_frame(self) -> None:
        filename, line = _extract_error_location(_raise_runtime())
        assert filename == __file__
        assert line > 0

    def test_no_traceback(self) -> None:
        assert _extract_error_location(ValueError("bare")) == ("", 0)


class TestFormatCycleError:
    def test_runtime_error_with_trace(self) -> None:
        text = format_cycle_error(_wrapped_runtime())
        lines = text.splitlines()
        assert lines[0] == "  Error in /app/src/router.py"
        assert lines[1] == "  Failed to load router from /app/src/router.py"
        assert "  ZeroDivisionError: division by zero" in lines
        assert any(line.startswith("    ") and "_raise_runtime" in line for line in lines)

    def test_build_error_lists_diagnostics(self) -> None:
        text = format_cycle_error(_wrapped_build())
        assert "  BuildError:" in text
        assert "    /app/src/router.py:3:9: invalid syntax" in text
        assert "    /app/src/users_controller.py: cannot resolve import '.missing'" in text
        assert "Traceback" not in text

    def test_unwrapped_error(self) -> None:
        text = format_cycle_error(RouterNotFoundError(["src/router.py", "router.py"]))
        assert text == "  RouterNotFoundError: No router file found. Searched: src/router.py, router.py"

    def test_wrapped_without_original(self) -> None:
        exc = RouterLoadError("Router module exports no router", path=Path("/app/router.py"))
        text = format_cycle_error(exc)
        assert "  Error in /app/router.py" in text
        assert "  RouterLoadError: Router module exports no router" in text

    def test_empty_message(self) -> None:
        assert format_cycle_error(KeyError()) == "  KeyError"


class TestErrorPayload:
    def test_runtime_payload(self) -> None:
        payload = error_payload(_wrapped_runtime())
        assert payload["type"] == "RouterLoadError"
        assert payload["file"] == "/app/src/router.py"
        assert payload["original"] == {"type": "ZeroDivisionError", "message": "division by zero"}
        assert "ZeroDivisionError" in payload["trace"]
        assert payload["line"] > 0

    def test_build_payload_carries_diagnostics(self) -> None:
        payload = error_payload(_wrapped_build())
        assert payload["original"]["type"] == "BuildError"
        assert len(payload["diagnostics"]) == 2

    def test_json_serializable(self) -> None:
        json.dumps(error_payload(_wrapped_build()))
        json.dumps(error_payload(_wrapped_runtime()))

    def test_unwrapped_has_no_original(self) -> None:
        payload = error_payload(RouterNotFoundError(["router.py"]))
        assert "original" not in payload
        assert payload["file"] == ""
