"""Schema converter — opaque validation schema to canonical JSON schema.

Recognised inputs, tried in order:

- objects implementing ``Describable`` (``to_canonical_schema()``)
- pydantic models (classes or instances)
- pydantic ``TypeAdapter`` instances
- mappings that already are JSON schemas
- type annotations pydantic can describe (``int``, ``list[str]``,
  ``Literal[...]``, ``TypedDict``, dataclasses, enums)

Anything else converts to ``None``. Conversion never raises: a field whose
schema cannot be described is simply left without one.
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import typing
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, TypeAdapter

from whisker._types import CanonicalSchema

# Keys that mark a mapping as an existing JSON schema document
_JSON_SCHEMA_KEYS: frozenset[str] = frozenset({
    "type",
    "properties",
    "items",
    "enum",
    "const",
    "$ref",
    "anyOf",
    "oneOf",
    "allOf",
    "format",
})


@runtime_checkable
class Describable(Protocol):
    """Capability of describing a value shape as a canonical schema."""

    def to_canonical_schema(self) -> CanonicalSchema: ...


def to_canonical_schema(value: object) -> CanonicalSchema | None:
    """Convert *value* to a canonical schema document, or None.

    The result is a fresh dict; mutating it never affects *value*.

    """
    if value is None:
        return None
    try:
        schema = _convert(value)
    except Exception:
        return None
    if not isinstance(schema, dict):
        return None
    return schema


def _convert(value: object) -> Any:
    if not isinstance(value, type) and isinstance(value, Describable):
        return copy.deepcopy(value.to_canonical_schema())

    if isinstance(value, type) and issubclass(value, BaseModel):
        return value.model_json_schema()
    if isinstance(value, BaseModel):
        return type(value).model_json_schema()

    if isinstance(value, TypeAdapter):
        return value.json_schema()

    if isinstance(value, Mapping):
        if _JSON_SCHEMA_KEYS.intersection(value.keys()):
            return copy.deepcopy(dict(value))
        return None

    if _is_annotation(value):
        return TypeAdapter(value).json_schema()

    return None


def _is_annotation(value: object) -> bool:
    """Whether *value* looks like a type annotation rather than a plain value."""
    if isinstance(value, type):
        return (
            value in (str, int, float, bool, bytes, list, dict, tuple, set)
            or issubclass(value, enum.Enum)
            or dataclasses.is_dataclass(value)
            or typing.is_typeddict(value)
        )
    return typing.get_origin(value) is not None
