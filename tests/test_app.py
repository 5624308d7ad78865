"""Tests for whisker.app — the generate / watch / docs entry points."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from whisker import app
from whisker._errors import DocsError, RouterLoadError, RouterNotFoundError


class TestGenerate:
    def test_writes_client_artifacts(self, blog_project: Path) -> None:
        result = app.generate(blog_project)

        assert result.stats.controller_count == 1
        assert result.stats.action_count == 3
        assert (blog_project / "src" / "router_schema.py").is_file()
        assert result.docs_path is None

    def test_docs_flag_writes_openapi(self, blog_project: Path) -> None:
        result = app.generate(blog_project, docs=True)

        assert result.docs_path == blog_project / "src" / "docs" / "openapi.json"
        document = json.loads(result.docs_path.read_text())
        assert document["info"]["title"] == "Blog API"
        assert "/posts/{id}" in document["paths"]

    def test_output_override(self, blog_project: Path) -> None:
        app.generate(blog_project, output="client")
        assert (blog_project / "client" / "router_schema.json").is_file()

    def test_config_file_respected(self, blog_project: Path) -> None:
        (blog_project / "whisker.yaml").write_text("output: generated\n")
        app.generate(blog_project)
        assert (blog_project / "generated" / "router_schema.py").is_file()

    def test_missing_router(self, tmp_path: Path) -> None:
        with pytest.raises(RouterNotFoundError):
            app.generate(tmp_path)

    def test_broken_router(self, write_project) -> None:
        root = write_project({"src/router.py": "raise RuntimeError('boom')\n"})
        with pytest.raises(RouterLoadError) as exc_info:
            app.generate(root)
        assert isinstance(exc_info.value.original, RuntimeError)

    def test_docs_failure_raised_after_artifacts(self, blog_project: Path) -> None:
        with (
            patch("whisker.pipeline.write_openapi", side_effect=DocsError("no servers")),
            pytest.raises(DocsError, match="Client artifacts were written"),
        ):
            app.generate(blog_project, docs=True)
        assert (blog_project / "src" / "router_schema.py").is_file()

    def test_banner_and_summary(self, blog_project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        app.generate(blog_project)
        err = capsys.readouterr().err
        assert "whisker" in err
        assert "router: src/router.py" in err
        assert "1 controller, 3 actions" in err


class TestDocs:
    def test_writes_openapi_only(self, blog_project: Path) -> None:
        files = app.docs(blog_project)

        assert [f.kind for f in files] == ["openapi"]
        assert (blog_project / "src" / "docs" / "openapi.json").is_file()
        assert not (blog_project / "src" / "router_schema.py").exists()

    def test_ui_and_output(self, blog_project: Path) -> None:
        files = app.docs(blog_project, output="public", ui=True)

        assert [f.kind for f in files] == ["openapi", "playground"]
        html = (blog_project / "public" / "index.html").read_text()
        assert "Blog API" in html

    def test_missing_router(self, tmp_path: Path) -> None:
        with pytest.raises(RouterNotFoundError):
            app.docs(tmp_path)


class TestWatch:
    def test_runs_session(self, blog_project: Path) -> None:
        with patch("whisker.live.session.WatchSession.run_forever") as run_forever:
            app.watch(blog_project, interactive=True)
        run_forever.assert_called_once_with()

    def test_warns_without_router(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("whisker.live.session.WatchSession.run_forever"):
            app.watch(tmp_path)
        assert "No router file yet" in capsys.readouterr().err
