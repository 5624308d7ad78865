"""Schema conversion and router introspection.

Turns a loaded router into a serializable, validation-library-independent
description (the introspected schema).
"""

from whisker.schema.converter import Describable, to_canonical_schema
from whisker.schema.introspector import (
    IntrospectedAction,
    IntrospectedController,
    IntrospectedSchema,
    IntrospectionResult,
    IntrospectionStats,
    introspect,
)

__all__ = [
    "Describable",
    "IntrospectedAction",
    "IntrospectedController",
    "IntrospectedSchema",
    "IntrospectionResult",
    "IntrospectionStats",
    "introspect",
    "to_canonical_schema",
]
