"""Maps user records to the views returned to callers."""

from typing import Optional

from account_service.models import User
from account_service.schemas import (
    AuthorQueryResponse,
    FollowersQueryResponse,
    Profile,
    UserQueryResponse,
    UserResponse,
)
from account_service.utils import create_access_token


def to_user_response(user: UserQueryResponse) -> UserResponse:
    """Public view of a user with a freshly signed token. The password hash is dropped."""
    token = create_access_token({"sub": str(user.id), "username": user.username})
    return UserResponse(
        username=user.username,
        image=user.image,
        bio=user.bio,
        email=user.email,
        token=token,
    )


def to_author(user: User) -> AuthorQueryResponse:
    return AuthorQueryResponse(
        username=user.username,
        bio=user.bio,
        image=user.image,
        followed_by=[FollowersQueryResponse(username=f.username) for f in user.followed_by],
    )


def to_profile(author: AuthorQueryResponse, viewer_username: Optional[str] = None) -> Profile:
    """Profile view; ``following`` is whether the viewer is among the author's followers."""
    following = viewer_username is not None and any(
        f.username == viewer_username for f in author.followed_by
    )
    return Profile(
        username=author.username,
        bio=author.bio,
        image=author.image,
        following=following,
    )
