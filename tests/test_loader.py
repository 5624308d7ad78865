"""Tests for whisker.loader — executing a compiled router in isolation."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from whisker._errors import BuildError, RouterLoadError
from whisker.loader import compile_and_load, compile_unit, load_router
from whisker.loader.sandbox import ProjectResolver, discover_dependency_paths, execute_unit
from whisker.router import Router

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_EXTERNAL = "whisker_fixture_extlib"


@pytest.fixture
def venv_package(write_project) -> Iterator[Path]:
    """A project with a package installed only in its own ``.venv``."""
    root = write_project({
        f".venv/lib/python3.12/site-packages/{_EXTERNAL}/__init__.py": "VALUE = 42\n",
        "router.py": f"""\
            import {_EXTERNAL}

            router = {{"controllers": {{}}, "value": {_EXTERNAL}.VALUE}}
        """,
    })
    yield root
    for name in [n for n in sys.modules if n == _EXTERNAL or n.startswith(_EXTERNAL + ".")]:
        del sys.modules[name]


# ---------------------------------------------------------------------------
# Router extraction
# ---------------------------------------------------------------------------


class TestCompileAndLoad:
    def test_loads_router(self, blog_project: Path) -> None:
        router = compile_and_load("src/router.py", root=blog_project)
        assert isinstance(router, Router)
        assert list(router.controllers) == ["posts"]

    def test_loaded_router_dispatches(self, blog_project: Path) -> None:
        router = compile_and_load("src/router.py", root=blog_project)
        assert router.dispatch("posts", "list") == ["hello"]

    def test_app_router_preferred(self, write_project) -> None:
        root = write_project({"router.py": """\
            AppRouter = {"controllers": {"a": {}}}
            router = {"controllers": {"b": {}}}
        """})
        assert list(compile_and_load("router.py", root=root)["controllers"]) == ["a"]

    def test_module_itself_as_router(self, write_project) -> None:
        root = write_project({"router.py": "controllers = {'posts': {}}\n"})
        router = compile_and_load("router.py", root=root)
        assert router.controllers == {"posts": {}}

    def test_absolute_entry_path(self, blog_project: Path) -> None:
        router = compile_and_load(blog_project / "src" / "router.py", root=blog_project)
        assert "posts" in router.controllers

    def test_load_router_returns_unit(self, blog_project: Path) -> None:
        loaded = load_router("src/router.py", root=blog_project)
        assert loaded.path == (blog_project / "src" / "router.py").resolve()
        assert loaded.unit.entry == "router"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestLoadFailures:
    def test_syntax_error_wraps_build_error(self, write_project) -> None:
        root = write_project({"router.py": "router = {\n"})
        with pytest.raises(RouterLoadError) as info:
            compile_and_load("router.py", root=root)
        assert isinstance(info.value.original, BuildError)
        assert info.value.path == (root / "router.py").resolve()
        assert "Failed to compile" in str(info.value)

    def test_runtime_error_wrapped(self, write_project) -> None:
        root = write_project({"router.py": "1 / 0\n"})
        with pytest.raises(RouterLoadError) as info:
            compile_and_load("router.py", root=root)
        assert isinstance(info.value.original, ZeroDivisionError)
        assert info.value.__cause__ is info.value.original

    def test_system_exit_wrapped(self, write_project) -> None:
        root = write_project({"router.py": "import sys\nsys.exit(3)\n"})
        with pytest.raises(RouterLoadError) as info:
            compile_and_load("router.py", root=root)
        assert isinstance(info.value.original, SystemExit)

    def test_missing_local_submodule(self, write_project) -> None:
        root = write_project({
            "router.py": "import pkg.missing\n",
            "pkg/__init__.py": "",
        })
        with pytest.raises(RouterLoadError) as info:
            compile_and_load("router.py", root=root)
        assert isinstance(info.value.original, ModuleNotFoundError)

    def test_no_router_export(self, write_project) -> None:
        root = write_project({"router.py": "value = 1\n"})
        with pytest.raises(RouterLoadError, match="exports no router") as info:
            compile_and_load("router.py", root=root)
        assert info.value.original is None

    def test_router_without_controllers_mapping(self, write_project) -> None:
        root = write_project({"router.py": "router = {'controllers': None}\n"})
        with pytest.raises(RouterLoadError, match="exports no router"):
            compile_and_load("router.py", root=root)


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


class TestIsolation:
    def test_fresh_modules_per_invocation(self, write_project) -> None:
        root = write_project({
            "router.py": """\
                import whisker_fixture_counter as counter

                counter.calls += 1
                router = {"controllers": {}, "calls": counter.calls}
            """,
            "whisker_fixture_counter.py": "calls = 0\n",
        })
        first = compile_and_load("router.py", root=root)
        second = compile_and_load("router.py", root=root)
        assert first["calls"] == 1
        assert second["calls"] == 1

    def test_bundled_modules_removed_from_sys_modules(self, write_project) -> None:
        root = write_project({
            "whisker_fixture_entry.py": "import whisker_fixture_dep\ncontrollers = {}\n",
            "whisker_fixture_dep.py": "",
        })
        compile_and_load("whisker_fixture_entry.py", root=root)
        assert "whisker_fixture_entry" not in sys.modules
        assert "whisker_fixture_dep" not in sys.modules

    def test_relative_imports_at_runtime(self, write_project) -> None:
        root = write_project({
            "src/app/__init__.py": "",
            "src/app/models.py": "NAME = 'posts'\n",
            "src/app/router.py": """\
                from .models import NAME

                router = {"controllers": {NAME: {}}}
            """,
        })
        router = compile_and_load("src/app/router.py", root=root)
        assert list(router["controllers"]) == ["posts"]

    def test_star_import(self, write_project) -> None:
        root = write_project({
            "router.py": "from pkg import *\nrouter = {'controllers': {name: {}}}\n",
            "pkg/__init__.py": "__all__ = ['name']\nname = 'users'\nhidden = 1\n",
        })
        assert list(compile_and_load("router.py", root=root)["controllers"]) == ["users"]

    def test_host_modules_resolved(self, write_project) -> None:
        root = write_project({"router.py": "import json\nrouter = {'controllers': json.loads('{}')}\n"})
        assert compile_and_load("router.py", root=root)["controllers"] == {}


# ---------------------------------------------------------------------------
# Project dependency resolution
# ---------------------------------------------------------------------------


class TestProjectDependencies:
    def test_discovers_venv_site_packages(self, venv_package: Path) -> None:
        paths = discover_dependency_paths(venv_package)
        assert paths == (venv_package / ".venv" / "lib" / "python3.12" / "site-packages",)

    def test_no_venv(self, tmp_path: Path) -> None:
        assert discover_dependency_paths(tmp_path) == ()

    def test_externalized_module_from_project_venv(self, venv_package: Path) -> None:
        unit = compile_unit("router.py", [_EXTERNAL], root=venv_package)
        assert _EXTERNAL not in unit

        module = execute_unit(unit, ProjectResolver(venv_package, unit.search_roots))
        assert module.router["value"] == 42

    def test_compile_and_load_with_externals(self, venv_package: Path) -> None:
        router = compile_and_load("router.py", [_EXTERNAL], root=venv_package)
        assert router["value"] == 42

    def test_resolver_paths_prefer_project(self, venv_package: Path) -> None:
        resolver = ProjectResolver(venv_package, (venv_package,))
        assert resolver.paths[0].endswith("site-packages")
        assert resolver.paths[-1] == str(venv_package)

    def test_host_module_wins_over_project_copy(self, venv_package: Path) -> None:
        import json

        site = venv_package / ".venv" / "lib" / "python3.12" / "site-packages"
        (site / "json").mkdir()
        (site / "json" / "__init__.py").write_text("SHADOW = True\n")

        resolved = ProjectResolver(venv_package).import_module("json")
        assert resolved is json
        assert not hasattr(resolved, "SHADOW")


# ---------------------------------------------------------------------------
# Pydantic models defined in the router
# ---------------------------------------------------------------------------


class TestDeferredModels:
    def test_forward_reference_resolved_after_unload(self, write_project) -> None:
        from whisker.schema.converter import to_canonical_schema

        root = write_project({"router.py": """\
            from __future__ import annotations

            from pydantic import BaseModel

            from whisker.router import Action, Controller, Router


            class Post(BaseModel):
                title: str
                author: Author


            class Author(BaseModel):
                name: str


            router = Router(controllers={
                "posts": Controller(
                    name="posts",
                    path="/posts",
                    actions={"show": Action(path="/:id", response=Post)},
                ),
            })
        """})
        router = compile_and_load("router.py", root=root)

        schema = to_canonical_schema(router.controllers["posts"].actions["show"].response)
        assert schema is not None
        assert schema["properties"]["author"] == {"$ref": "#/$defs/Author"}
        assert schema["$defs"]["Author"]["properties"]["name"]["type"] == "string"

    def test_model_in_imported_module(self, write_project) -> None:
        root = write_project({
            "models.py": """\
                from __future__ import annotations

                from pydantic import BaseModel


                class Thread(BaseModel):
                    replies: list[Reply] = []


                class Reply(BaseModel):
                    body: str
            """,
            "router.py": """\
                from models import Thread

                router = {"controllers": {}, "model": Thread}
            """,
        })
        router = compile_and_load("router.py", root=root)
        assert "Reply" in router["model"].model_json_schema()["$defs"]

    def test_unresolvable_annotation_does_not_fail_load(self, write_project) -> None:
        root = write_project({"router.py": """\
            from __future__ import annotations

            from pydantic import BaseModel


            class Broken(BaseModel):
                missing: Nowhere


            router = {"controllers": {}, "model": Broken}
        """})
        router = compile_and_load("router.py", root=root)
        assert router["model"].__pydantic_complete__ is False
