"""Shared type definitions for whisker."""

from collections.abc import Callable
from typing import Any, Literal

# HTTP methods an action may declare
type HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]

# JSON-schema-like document produced by the schema converter
type CanonicalSchema = dict[str, Any]

# Complete OpenAPI document
type OpenAPIDocument = dict[str, Any]

# Lifecycle stage of a watch session
type SessionState = Literal[
    "idle", "loading-router", "generating-artifacts", "generating-docs"
]

# Callback notified when a regeneration cycle enters a new stage
type StageCallback = Callable[[SessionState], None]

# Handler bound to an action
type ActionHandler = Callable[..., Any]
