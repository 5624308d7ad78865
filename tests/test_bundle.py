"""Tests for whisker.loader.bundle — compiling an entry and its local imports."""

from __future__ import annotations

from pathlib import Path

import pytest

from whisker._errors import BuildError
from whisker.loader.bundle import compile_unit, find_local_module, is_externalized


class TestIsExternalized:
    def test_exact_name(self) -> None:
        assert is_externalized("redis", ["redis"])

    def test_submodule(self) -> None:
        assert is_externalized("redis.client", ["redis"])

    def test_prefix_is_not_enough(self) -> None:
        assert not is_externalized("redisx", ["redis"])

    def test_glob(self) -> None:
        assert is_externalized("opentelemetry.sdk", ["opentelemetry.*"])

    def test_no_patterns(self) -> None:
        assert not is_externalized("anything", [])


class TestCompileUnit:
    def test_single_file(self, write_project) -> None:
        root = write_project({"router.py": "router = None\n"})
        unit = compile_unit("router.py", root=root)
        assert unit.entry == "router"
        assert unit.entry_path == root / "router.py"
        assert list(unit.modules) == ["router"]

    def test_follows_local_imports(self, write_project) -> None:
        root = write_project({
            "src/router.py": "from controllers.posts import posts\nimport helpers\n",
            "src/controllers/__init__.py": "",
            "src/controllers/posts.py": "from .shared import base\nposts = base\n",
            "src/controllers/shared.py": "base = 1\n",
            "src/helpers.py": "import json\n",
        })
        unit = compile_unit("src/router.py", root=root)
        assert set(unit.modules) == {
            "router",
            "controllers",
            "controllers.posts",
            "controllers.shared",
            "helpers",
        }
        assert unit.modules["controllers"].is_package
        assert not unit.modules["helpers"].is_package

    def test_stdlib_and_installed_not_bundled(self, write_project) -> None:
        root = write_project({"router.py": "import json\nfrom pydantic import BaseModel\n"})
        unit = compile_unit("router.py", root=root)
        assert list(unit.modules) == ["router"]

    def test_externalized_local_module_not_bundled(self, write_project) -> None:
        root = write_project({
            "router.py": "import services.db\n",
            "services/__init__.py": "",
            "services/db.py": "",
        })
        unit = compile_unit("router.py", ["services"], root=root)
        assert "services" not in unit
        assert "services.db" not in unit
        assert unit.externals == ("services",)

    def test_entry_inside_package(self, write_project) -> None:
        root = write_project({
            "src/app/__init__.py": "",
            "src/app/router.py": "from . import models\n",
            "src/app/models.py": "",
        })
        unit = compile_unit("src/app/router.py", root=root)
        assert unit.entry == "app.router"
        assert {"app", "app.router", "app.models"} <= set(unit.modules)
        assert root / "src" in unit.search_roots

    def test_from_import_submodule(self, write_project) -> None:
        root = write_project({
            "router.py": "from pkg import sub\n",
            "pkg/__init__.py": "",
            "pkg/sub.py": "",
        })
        unit = compile_unit("router.py", root=root)
        assert "pkg.sub" in unit

    def test_namespace_package(self, write_project) -> None:
        root = write_project({
            "router.py": "from ns.mod import value\n",
            "ns/mod.py": "value = 1\n",
        })
        unit = compile_unit("router.py", root=root)
        assert unit.modules["ns"].is_package
        assert "ns.mod" in unit

    def test_circular_imports(self, write_project) -> None:
        root = write_project({
            "router.py": "import a\n",
            "a.py": "import b\n",
            "b.py": "import a\n",
        })
        unit = compile_unit("router.py", root=root)
        assert {"router", "a", "b"} == set(unit.modules)


class TestCompileErrors:
    def test_missing_entry(self, tmp_path: Path) -> None:
        with pytest.raises(BuildError, match="entry file not found"):
            compile_unit("nope.py", root=tmp_path)

    def test_syntax_error_has_location(self, write_project) -> None:
        root = write_project({"router.py": "x = 1\ndef broken(:\n"})
        with pytest.raises(BuildError) as info:
            compile_unit("router.py", root=root)
        assert len(info.value.diagnostics) == 1
        message = info.value.diagnostics[0]
        assert f"{(root / 'router.py').resolve()}:2:" in message
        assert "SyntaxError" in message

    def test_collects_every_diagnostic(self, write_project) -> None:
        root = write_project({
            "router.py": "import a\nimport b\n",
            "a.py": "def (:\n",
            "b.py": "class\n",
        })
        with pytest.raises(BuildError) as info:
            compile_unit("router.py", root=root)
        assert len(info.value.diagnostics) == 2
        assert str(info.value).count("SyntaxError") == 2

    def test_unresolvable_relative_import(self, write_project) -> None:
        root = write_project({
            "pkg/__init__.py": "",
            "pkg/router.py": "from .missing import thing\n",
        })
        with pytest.raises(BuildError, match="could not resolve '.missing'"):
            compile_unit("pkg/router.py", root=root)

    def test_relative_import_without_package(self, write_project) -> None:
        root = write_project({"router.py": "from . import x\n"})
        with pytest.raises(BuildError, match="no known parent package"):
            compile_unit("router.py", root=root)

    def test_relative_import_beyond_top_level(self, write_project) -> None:
        root = write_project({
            "pkg/__init__.py": "",
            "pkg/router.py": "from ... import x\n",
        })
        with pytest.raises(BuildError, match="beyond top-level package"):
            compile_unit("pkg/router.py", root=root)


class TestFindLocalModule:
    def test_module_file(self, tmp_path: Path) -> None:
        (tmp_path / "mod.py").write_text("")
        assert find_local_module("mod", [tmp_path]) == (tmp_path / "mod.py", False)

    def test_package(self, tmp_path: Path) -> None:
        (tmp_path / "pkg").mkdir()
        (tmp_path / "pkg" / "__init__.py").write_text("")
        assert find_local_module("pkg", [tmp_path]) == (tmp_path / "pkg" / "__init__.py", True)

    def test_missing(self, tmp_path: Path) -> None:
        assert find_local_module("json", [tmp_path]) is None
