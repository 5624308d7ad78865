"""Router introspector — walks a loaded router into a serializable schema.

Controllers are visited in the router's insertion order. Every opaque
validation schema (body, query, per-param, response) is replaced by the
schema converter's output; all other action metadata is copied untouched.
The router's ``docs`` configuration is passed through verbatim when present.

Accepts any structurally equivalent object graph: each node may be a
mapping or an object exposing attributes of the same names.
"""

from __future__ import annotations

import copy
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from whisker._types import CanonicalSchema
from whisker.router import HTTP_METHODS
from whisker.schema.converter import to_canonical_schema

_MISSING = object()


@dataclass(frozen=True, slots=True)
class IntrospectedAction:
    """One action with its schemas converted to canonical documents."""

    name: str
    path: str
    method: str
    description: str | None
    tags: tuple[str, ...] | None
    security: Any
    is_stream: bool
    body_schema: CanonicalSchema | None
    query_schema: CanonicalSchema | None
    param_schemas: dict[str, CanonicalSchema | None] | None
    response_schema: CanonicalSchema | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "method": self.method,
            "description": self.description,
            "tags": list(self.tags) if self.tags is not None else None,
            "security": self.security,
            "is_stream": self.is_stream,
            "body_schema": self.body_schema,
            "query_schema": self.query_schema,
            "param_schemas": self.param_schemas,
            "response_schema": self.response_schema,
        }


@dataclass(frozen=True, slots=True)
class IntrospectedController:
    """A controller and its introspected actions, in declaration order."""

    name: str
    path: str
    description: str | None
    actions: dict[str, IntrospectedAction]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "description": self.description,
            "actions": {key: action.to_dict() for key, action in self.actions.items()},
        }


@dataclass(frozen=True, slots=True)
class IntrospectedSchema:
    """Serializable description of a router.

    Attributes:
        controllers: Introspected controllers keyed as in the router.
        docs: Documentation configuration copied from the router, or None
            when the router supplied none.

    """

    controllers: dict[str, IntrospectedController]
    docs: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "controllers": {
                key: controller.to_dict() for key, controller in self.controllers.items()
            },
        }
        if self.docs is not None:
            data["docs"] = self.docs
        return data


@dataclass(frozen=True, slots=True)
class IntrospectionStats:
    """Aggregate counts for one introspection run."""

    controller_count: int
    action_count: int


@dataclass(frozen=True, slots=True)
class IntrospectionResult:
    """Outcome of ``introspect()``.

    Attributes:
        schema: The introspected schema.
        stats: Controller and action counts (skipped controllers excluded).
        skipped: Keys of controllers dropped as structurally malformed.

    """

    schema: IntrospectedSchema
    stats: IntrospectionStats
    skipped: tuple[str, ...] = ()


class _MalformedController(Exception):
    """Raised internally when one controller cannot be introspected."""


def introspect(router: Any) -> IntrospectionResult:
    """Introspect a loaded router.

    Never raises for individual schema or controller problems: unconvertible
    schemas become None and malformed controllers are skipped and listed in
    ``IntrospectionResult.skipped``.

    """
    controllers: dict[str, IntrospectedController] = {}
    skipped: list[str] = []
    action_count = 0

    raw_controllers = _read(router, "controllers")
    if not isinstance(raw_controllers, Mapping):
        raw_controllers = {}

    for key, controller in raw_controllers.items():
        try:
            introspected = _introspect_controller(str(key), controller)
        except _MalformedController as exc:
            print(f"  Skipping controller {key!r}: {exc}", file=sys.stderr)
            skipped.append(str(key))
            continue
        controllers[str(key)] = introspected
        action_count += len(introspected.actions)

    schema = IntrospectedSchema(controllers=controllers, docs=_read_docs(router))
    stats = IntrospectionStats(
        controller_count=len(controllers),
        action_count=action_count,
    )
    return IntrospectionResult(schema=schema, stats=stats, skipped=tuple(skipped))


def _introspect_controller(key: str, controller: Any) -> IntrospectedController:
    try:
        name = _read(controller, "name") or key
        path = _read(controller, "path") or ""
        description = _read(controller, "description")
        raw_actions = _read(controller, "actions")
    except Exception as exc:
        raise _MalformedController(f"unreadable controller ({exc})") from exc

    if raw_actions is None:
        raw_actions = {}
    if not isinstance(raw_actions, Mapping):
        msg = f"'actions' must be a mapping, got {type(raw_actions).__name__}"
        raise _MalformedController(msg)

    actions: dict[str, IntrospectedAction] = {}
    for action_key, action in raw_actions.items():
        actions[str(action_key)] = _introspect_action(key, str(action_key), action)

    return IntrospectedController(
        name=str(name),
        path=str(path),
        description=description,
        actions=actions,
    )


def _introspect_action(controller_key: str, key: str, action: Any) -> IntrospectedAction:
    try:
        method = str(_read(action, "method") or "GET").upper()
        path = _read(action, "path")
        name = _read(action, "name") or key
        description = _read(action, "description")
        tags = _as_tags(_read(action, "tags"))
        security = _read(action, "security")
        stream = _read(action, "stream", _MISSING)
        if stream is _MISSING:
            stream = _read(action, "is_stream", False)
        body = _read(action, "body")
        query = _read(action, "query")
        params = _read(action, "params")
        response = _read(action, "response")
    except Exception as exc:
        msg = f"unreadable action {controller_key}.{key} ({exc})"
        raise _MalformedController(msg) from exc

    if method not in HTTP_METHODS:
        msg = f"action {controller_key}.{key} has unsupported method {method!r}"
        raise _MalformedController(msg)
    if path is None:
        msg = f"action {controller_key}.{key} has no path"
        raise _MalformedController(msg)

    param_schemas: dict[str, CanonicalSchema | None] | None = None
    if isinstance(params, Mapping):
        param_schemas = {
            str(param): to_canonical_schema(value) for param, value in params.items()
        }

    return IntrospectedAction(
        name=str(name),
        path=str(path),
        method=method,
        description=description,
        tags=tags,
        security=security,
        is_stream=bool(stream),
        body_schema=to_canonical_schema(body),
        query_schema=to_canonical_schema(query),
        param_schemas=param_schemas,
        response_schema=to_canonical_schema(response),
    )


def _read_docs(router: Any) -> dict[str, Any] | None:
    config = _read(router, "config")
    if config is None:
        return None
    docs = _read(config, "docs")
    if docs is None:
        return None
    try:
        return copy.deepcopy(docs)
    except (TypeError, copy.Error):
        return docs


def _as_tags(tags: Any) -> tuple[str, ...] | None:
    if tags is None:
        return None
    if isinstance(tags, str):
        return (tags,)
    return tuple(str(tag) for tag in tags)


def _read(node: Any, name: str, default: Any = None) -> Any:
    """Read *name* from a mapping key or an attribute."""
    if isinstance(node, Mapping):
        return node.get(name, default)
    return getattr(node, name, default)
