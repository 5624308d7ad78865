"""Whisker — keep a router's schema, client artifacts and OpenAPI docs in sync.

Compiles the project's router definition in-process, introspects its
controllers and actions, and writes the client surface (and optionally an
OpenAPI document) every time the source changes.

Quick start::

    import whisker

    whisker.generate("my-api/")

Three entry points::

    whisker.generate("my-api/")          # One-shot regeneration
    whisker.watch("my-api/")             # Regenerate on every change
    whisker.docs("my-api/", ui=True)     # OpenAPI document only

Defining a router::

    from whisker import Action, Controller, Router

    router = Router(
        controllers={
            "posts": Controller(
                name="posts",
                path="/posts",
                actions={"list": Action(path="/", handler=list_posts)},
            ),
        },
        config={"docs": {"info": {"title": "Blog API"}}},
    )

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0.dev0"
__all__ = [
    "Action",
    "Controller",
    "Router",
    "WhiskerConfig",
    "__version__",
    "docs",
    "generate",
    "watch",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import whisker`` fast while providing a clean top-level API.
    """
    if name in ("Action", "Controller", "Router"):
        from whisker import router

        return getattr(router, name)

    if name == "WhiskerConfig":
        from whisker.config import WhiskerConfig

        return WhiskerConfig

    if name in ("generate", "watch", "docs"):
        from whisker import app

        return getattr(app, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
