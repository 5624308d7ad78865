"""Blog API router.

Run ``whisker generate --watch examples/blog-api`` and edit any controller:
the client schema and OpenAPI document are rewritten on save.
"""

from whisker import Router

from posts_controller import posts
from users_controller import users

router = Router(
    controllers={"posts": posts, "users": users},
    config={
        "docs": {
            "info": {"title": "Blog API", "version": "1.2.0", "description": "Posts and their authors."},
            "servers": [{"url": "http://localhost:8000"}],
            "securitySchemes": {"bearerAuth": {"type": "http", "scheme": "bearer"}},
        },
    },
)
