"""Pydantic models (schemas) for the account service input/output."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- User payloads ---

class UserCreatePayload(BaseModel):
    """Data required to register a new user."""
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserUpdatePayload(BaseModel):
    """Fields a user may change on their own account. Omitted fields stay untouched."""
    username: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=1)


class UserLoginPayload(BaseModel):
    email: str
    password: str


# --- Request envelopes: {"user": {...}} ---

class UserCreateRequest(BaseModel):
    user: UserCreatePayload


class UserUpdateRequest(BaseModel):
    user: UserUpdatePayload


class UserLoginRequest(BaseModel):
    user: UserLoginPayload


# --- Views of a user ---

class UserQueryResponse(BaseModel):
    """Projected database row: the full record without token, following flag or followers."""
    id: int
    email: str
    username: str
    bio: Optional[str] = None
    password: str
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """Public view returned to callers (no password hash)."""
    username: str
    image: Optional[str] = None
    bio: Optional[str] = None
    email: str
    token: str


class UserEnvelope(BaseModel):
    user: UserResponse


class FollowersQueryResponse(BaseModel):
    username: str

    model_config = ConfigDict(from_attributes=True)


class AuthorQueryResponse(BaseModel):
    username: str
    bio: Optional[str] = None
    image: Optional[str] = None
    followed_by: List[FollowersQueryResponse] = []

    model_config = ConfigDict(from_attributes=True)


class Profile(BaseModel):
    username: str
    bio: Optional[str] = None
    image: Optional[str] = None
    following: bool = False


class ProfileEnvelope(BaseModel):
    profile: Profile


# --- Token ---

class TokenPayload(BaseModel):
    """Decoded payload of a valid JWT."""
    sub: Optional[str] = None
    username: Optional[str] = None
    exp: Optional[int] = None
