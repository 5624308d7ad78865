"""Users."""

from whisker import Action, Controller

from models import Author, NewUser

users = Controller(
    name="users",
    path="/users",
    actions={
        "show": Action(path="/{id}", params={"id": int}, response=Author),
        "register": Action(path="/", method="POST", body=NewUser, response=Author, tags=["auth"]),
    },
)
