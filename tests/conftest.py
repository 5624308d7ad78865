"""Shared test fixtures for whisker."""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from whisker.config import WhiskerConfig

BLOG_ROUTER = '''\
from pydantic import BaseModel

from whisker.router import Action, Controller, Router


class NewPost(BaseModel):
    title: str
    body: str = ""


class PostQuery(BaseModel):
    limit: int = 10
    tag: str | None = None


def list_posts(input):
    return ["hello"]


router = Router(
    controllers={
        "posts": Controller(
            name="posts",
            path="/posts",
            description="Blog posts",
            actions={
                "list": Action(path="/", query=PostQuery, handler=list_posts),
                "create": Action(path="/", method="POST", body=NewPost, response=NewPost),
                "show": Action(path="/:id", params={"id": int}),
            },
        ),
    },
    config={"docs": {"info": {"title": "Blog API", "version": "2.0.0"}}},
)
'''


type WriteProject = Callable[[dict[str, str]], Path]


@pytest.fixture
def write_project(tmp_path: Path) -> WriteProject:
    """Return a helper writing ``{relative path: source}`` under a project root.

    Sources are dedented, parent directories are created, and the project
    root is returned.
    """
    root = tmp_path / "project"
    root.mkdir()

    def _write(files: dict[str, str]) -> Path:
        for rel, source in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source), encoding="utf-8")
        return root

    return _write


@pytest.fixture
def blog_project(write_project: WriteProject) -> Path:
    """A project whose ``src/router.py`` defines a small blog router."""
    return write_project({"src/router.py": BLOG_ROUTER})


@pytest.fixture
def blog_config(blog_project: Path) -> WhiskerConfig:
    """WhiskerConfig rooted at ``blog_project``."""
    return WhiskerConfig(root=blog_project)
