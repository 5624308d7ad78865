"""Posts — list, read, create and follow new posts."""

from whisker import Action, Controller

from models import NewPost, Post, PostQuery

posts = Controller(
    name="posts",
    path="/posts",
    description="Blog posts",
    actions={
        "list": Action(path="/", query=PostQuery, response=list[Post]),
        "show": Action(path="/:id", params={"id": int}, response=Post),
        "create": Action(
            path="/",
            method="POST",
            body=NewPost,
            response=Post,
            security=[{"bearerAuth": []}],
        ),
        "feed": Action(
            path="/feed",
            stream=True,
            response=Post,
            description="New posts as they are published",
        ),
    },
)
