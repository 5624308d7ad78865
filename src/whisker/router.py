"""Router definition model — what a project's router module builds.

A router is a tree of named controllers, each exposing named actions::

    from pydantic import BaseModel
    from whisker.router import Action, Controller, Router

    class NewPost(BaseModel):
        title: str

    posts = Controller(
        name="posts",
        path="/posts",
        actions={
            "list": Action(path="/", handler=list_posts),
            "create": Action(path="/", method="POST", body=NewPost, handler=create_post),
        },
    )

    AppRouter = Router(controllers={"posts": posts}, config={"docs": {...}})

The schema tooling only reads these objects; request dispatch is exposed
through the explicit ``Router.dispatch`` method.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from whisker._types import ActionHandler, HttpMethod

HTTP_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH"})


@dataclass(frozen=True, slots=True)
class Action:
    """A single operation exposed by a controller.

    Attributes:
        path: Path relative to the controller (``/``, ``/:id``).
        method: HTTP method, upper-cased on construction.
        handler: Callable invoked by ``Router.dispatch``.
        name: Display name; defaults to the action key when introspected.
        description: Free-form summary.
        tags: Extra grouping labels.
        security: Opaque security requirement, passed through untouched.
        stream: Whether the action streams server-sent events.
        body: Validation schema for the request body.
        query: Validation schema for the query string.
        params: Validation schema per path parameter.
        response: Validation schema for the response payload.

    """

    path: str
    method: HttpMethod = "GET"
    handler: ActionHandler | None = None
    name: str | None = None
    description: str | None = None
    tags: tuple[str, ...] | None = None
    security: Any = None
    stream: bool = False
    body: Any = None
    query: Any = None
    params: Mapping[str, Any] | None = None
    response: Any = None

    def __post_init__(self) -> None:
        method = str(self.method).upper()
        if method not in HTTP_METHODS:
            msg = f"Unsupported HTTP method {self.method!r} (expected one of {sorted(HTTP_METHODS)})"
            raise ValueError(msg)
        object.__setattr__(self, "method", method)
        if self.tags is not None and not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))


@dataclass(frozen=True, slots=True)
class Controller:
    """A named, path-prefixed group of actions."""

    name: str
    path: str
    actions: Mapping[str, Action] = field(default_factory=dict)
    description: str | None = None


@dataclass(frozen=True, slots=True)
class Router:
    """Root of an application's controller tree.

    Attributes:
        controllers: Controllers keyed by name, in declaration order.
        config: Router configuration; ``config["docs"]`` carries the
            documentation settings consumed by the OpenAPI generator.

    """

    controllers: Mapping[str, Controller]
    config: Mapping[str, Any] = field(default_factory=dict)

    def dispatch(self, controller: str, action: str, input: Any = None) -> Any:
        """Invoke the handler of ``controller.action`` with *input*.

        Coroutine handlers are returned un-awaited.

        Raises:
            LookupError: Unknown controller or action.
            TypeError: The action has no handler.

        """
        ctrl = self.controllers.get(controller)
        if ctrl is None:
            msg = f"Unknown controller {controller!r}"
            raise LookupError(msg)
        act = ctrl.actions.get(action)
        if act is None:
            msg = f"Unknown action {action!r} on controller {controller!r}"
            raise LookupError(msg)
        if act.handler is None:
            msg = f"Action {controller}.{action} has no handler"
            raise TypeError(msg)
        return act.handler(input)
