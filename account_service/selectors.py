"""Fixed column projection used by every user lookup."""

from sqlalchemy import select

from account_service.models import User

# id, email, username, bio, password, image
USER_SELECTOR = (
    User.id,
    User.email,
    User.username,
    User.bio,
    User.password,
    User.image,
)


def select_user():
    """SELECT over the projected user columns."""
    return select(*USER_SELECTOR)
