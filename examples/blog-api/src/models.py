"""Request and response models shared by the blog controllers."""

from datetime import datetime

from pydantic import BaseModel, Field


class Author(BaseModel):
    id: int
    name: str


class Post(BaseModel):
    id: int
    title: str
    body: str
    author: Author
    published_at: datetime | None = None


class NewPost(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    body: str = ""


class PostQuery(BaseModel):
    limit: int = Field(default=20, ge=1, le=100)
    tag: str | None = None


class NewUser(BaseModel):
    name: str
    email: str
