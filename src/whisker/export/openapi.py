"""OpenAPI generator — introspected schema to an OpenAPI 3.1 document.

Pure and deterministic: the same schema and docs configuration always
produce the same document, and neither input is mutated.

Documentation settings come from the router's ``docs`` configuration
(``info``, ``servers``, ``securitySchemes``, ``security``) and are passed
through without validation. Missing values fall back to a generic title,
version ``1.0.0`` and an empty server list; an unset description is left
out of ``info`` entirely.
"""

from __future__ import annotations

import copy
import html
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from whisker._types import CanonicalSchema, OpenAPIDocument
    from whisker.schema.introspector import (
        IntrospectedAction,
        IntrospectedController,
        IntrospectedSchema,
    )

OPENAPI_VERSION = "3.1.0"
DEFAULT_TITLE = "Whisker API"
DEFAULT_VERSION = "1.0.0"

_COMPONENT_PREFIX = "#/components/schemas/"
_DEFS_PREFIX = "#/$defs/"
_COLON_PARAM = re.compile(r":([A-Za-z0-9_]+)")
_BRACE_PARAM = re.compile(r"\{([A-Za-z0-9_]+)\}")

_STREAM_NOTE = (
    "This endpoint supports Server-Sent Events (SSE) for real-time updates. "
    "It starts as a standard request, then keeps the connection open to stream data."
)


class OpenAPIGenerator:
    """Builds an OpenAPI document from an introspected schema.

    Args:
        docs: Documentation configuration. When None, the schema's own
            ``docs`` is used at generation time.

    """

    def __init__(self, docs: Mapping[str, Any] | None = None) -> None:
        self._docs = docs
        self._schemas: dict[str, Any] = {}
        self._definitions: dict[str, Any] = {}

    def generate(self, schema: IntrospectedSchema) -> OpenAPIDocument:
        """Return the OpenAPI document for *schema*."""
        docs = self._docs if self._docs is not None else schema.docs
        if not isinstance(docs, Mapping):
            docs = {}

        self._schemas = {}
        self._definitions = {}
        paths = self._build_paths(schema)

        document: OpenAPIDocument = {
            "openapi": OPENAPI_VERSION,
            "info": _build_info(docs),
            "servers": copy.deepcopy(list(docs.get("servers") or [])),
            "tags": self._build_tags(schema),
            "paths": paths,
            "components": {
                "schemas": self._schemas,
                "securitySchemes": copy.deepcopy(dict(docs.get("securitySchemes") or {})),
            },
        }
        if docs.get("security") is not None:
            document["security"] = copy.deepcopy(docs["security"])
        return document

    def _build_tags(self, schema: IntrospectedSchema) -> list[dict[str, Any]]:
        tags: list[dict[str, Any]] = []
        for key, controller in schema.controllers.items():
            tag: dict[str, Any] = {"name": controller.name or key}
            if controller.description:
                tag["description"] = controller.description
            tags.append(tag)
        return tags

    def _build_paths(self, schema: IntrospectedSchema) -> dict[str, Any]:
        paths: dict[str, Any] = {}
        for controller_key, controller in schema.controllers.items():
            for action_key, action in controller.actions.items():
                path = join_path(controller.path, action.path)
                operation = self._build_operation(
                    path, controller_key, controller, action_key, action,
                )
                paths.setdefault(path, {})[action.method.lower()] = operation
        return paths

    def _build_operation(
        self,
        path: str,
        controller_key: str,
        controller: IntrospectedController,
        action_key: str,
        action: IntrospectedAction,
    ) -> dict[str, Any]:
        tag = controller.name or controller_key
        base_name = _pascal(controller_key) + _pascal(action_key)

        operation: dict[str, Any] = {
            "operationId": f"{controller_key}_{action_key}",
            "summary": action.description or action.name,
            "tags": [tag, *(t for t in action.tags or () if t != tag)],
        }

        parameters = self._path_parameters(path, action, base_name)
        if action.query_schema is not None:
            parameters.extend(self._query_parameters(base_name + "Query", action.query_schema))
        if parameters:
            operation["parameters"] = parameters

        if action.body_schema is not None:
            operation["requestBody"] = {
                "required": True,
                "content": {
                    "application/json": {
                        "schema": self._register(base_name + "Body", action.body_schema),
                    },
                },
            }

        response_schema: dict[str, Any] = {}
        if action.response_schema is not None:
            response_schema = self._register(base_name + "Response", action.response_schema)
        media_type = "text/event-stream" if action.is_stream else "application/json"
        operation["responses"] = {
            "200": {
                "description": "Success",
                "content": {media_type: {"schema": response_schema}},
            },
        }

        if action.is_stream:
            operation["description"] = _STREAM_NOTE
        if action.security is not None:
            operation["security"] = copy.deepcopy(action.security)
        return operation

    def _path_parameters(
        self, path: str, action: IntrospectedAction, owner: str,
    ) -> list[dict[str, Any]]:
        # Controller segments count too: join_path has already braced every :param.
        names = _BRACE_PARAM.findall(path)
        parameters: list[dict[str, Any]] = []
        for name in dict.fromkeys(names):
            schema = (action.param_schemas or {}).get(name)
            parameters.append({
                "name": name,
                "in": "path",
                "required": True,
                "schema": self._inline(schema, owner) if schema is not None else {"type": "string"},
            })
        return parameters

    def _query_parameters(self, name: str, query_schema: CanonicalSchema) -> list[dict[str, Any]]:
        self._register(name, query_schema)
        registered = self._schemas[name]
        required = set(registered.get("required") or ())
        return [
            {
                "name": prop,
                "in": "query",
                "required": prop in required,
                "schema": copy.deepcopy(prop_schema),
            }
            for prop, prop_schema in (registered.get("properties") or {}).items()
        ]

    def _register(self, name: str, schema: CanonicalSchema) -> dict[str, str]:
        """Store *schema* under components and return a ``$ref`` to it."""
        self._schemas[name] = self._inline(schema, name)
        return {"$ref": _COMPONENT_PREFIX + name}

    def _inline(self, schema: CanonicalSchema, owner: str) -> dict[str, Any]:
        """Copy *schema*, hoisting ``$defs`` into components and rewriting refs.

        A definition whose name is already taken by a different definition
        is published as ``<owner><Name>`` (plus a counter if that is taken
        too), so two models sharing a class name never collapse into one
        component.

        """
        body = copy.deepcopy(schema)
        defs = body.pop("$defs", None) or {}

        renames: dict[str, str] = {}
        for def_name, definition in defs.items():
            seen = self._definitions.get(def_name)
            if seen is None or seen == definition:
                self._definitions[def_name] = definition
            else:
                renames[def_name] = self._unique_name(owner + def_name)
                self._definitions[renames[def_name]] = definition

        for def_name, definition in defs.items():
            target = renames.get(def_name, def_name)
            self._schemas.setdefault(target, _rewrite_refs(definition, renames))
        return _rewrite_refs(body, renames)

    def _unique_name(self, base: str) -> str:
        name, counter = base, 2
        while name in self._definitions or name in self._schemas:
            name = f"{base}{counter}"
            counter += 1
        return name


def generate_openapi(
    schema: IntrospectedSchema,
    docs: Mapping[str, Any] | None = None,
) -> OpenAPIDocument:
    """Shortcut for ``OpenAPIGenerator(docs).generate(schema)``."""
    return OpenAPIGenerator(docs).generate(schema)


def join_path(controller_path: str, action_path: str) -> str:
    """Join controller and action paths into an OpenAPI path key.

    ``("/posts", "/:id")`` -> ``/posts/{id}``; ``("posts", "/")`` -> ``/posts``.

    """
    path = re.sub(r"/{2,}", "/", f"/{controller_path}/{action_path}")
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return _COLON_PARAM.sub(r"{\1}", path)


def render_playground(spec_url: str = "./openapi.json", title: str = "API Reference") -> str:
    """Return a self-contained Scalar API reference page for *spec_url*."""
    return (
        "<!doctype html>\n"
        '<html lang="en">\n'
        "  <head>\n"
        '    <meta charset="utf-8" />\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1" />\n'
        f"    <title>{html.escape(title)}</title>\n"
        "  </head>\n"
        "  <body>\n"
        f'    <script id="api-reference" data-url="{html.escape(spec_url, quote=True)}"></script>\n'
        '    <script src="https://cdn.jsdelivr.net/npm/@scalar/api-reference"></script>\n'
        "  </body>\n"
        "</html>\n"
    )


def _build_info(docs: Mapping[str, Any]) -> dict[str, Any]:
    configured = docs.get("info")
    if not isinstance(configured, Mapping):
        configured = {}

    info: dict[str, Any] = {
        "title": configured.get("title") or DEFAULT_TITLE,
        "version": configured.get("version") or DEFAULT_VERSION,
    }
    if configured.get("description") is not None:
        info["description"] = configured["description"]
    for key, value in configured.items():
        if key not in ("title", "version", "description"):
            info[key] = copy.deepcopy(value)
    return info


def _rewrite_refs(node: Any, renames: Mapping[str, str]) -> Any:
    if isinstance(node, dict):
        rewritten = {key: _rewrite_refs(value, renames) for key, value in node.items()}
        ref = rewritten.get("$ref")
        if isinstance(ref, str) and ref.startswith(_DEFS_PREFIX):
            name = ref[len(_DEFS_PREFIX):]
            rewritten["$ref"] = _COMPONENT_PREFIX + renames.get(name, name)
        return rewritten
    if isinstance(node, list):
        return [_rewrite_refs(item, renames) for item in node]
    return node


def _pascal(value: str) -> str:
    return "".join(
        part[:1].upper() + part[1:] for part in re.split(r"[^A-Za-z0-9]+", value) if part
    )
