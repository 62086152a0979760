"""
Account use cases: registration, login, current user, update, id and profile lookup.

Every public operation is an ordered sequence of steps. Steps that can fail
return a ``Failure``; ``raise_for_failure`` runs right after each of them so
nothing downstream (hashing, persistence, mapping) ever sees a failure.

Uniqueness is checked before insert/update, but two concurrent requests can
both pass the check. The unique constraints on ``users`` settle that race;
an ``IntegrityError`` is rolled back and reported with the same 422 shape.
"""

import logging
from typing import Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy import exc
from sqlalchemy.orm import Session

from account_service.errors import Failure, ServiceError, raise_for_failure
from account_service.mappers import to_author, to_profile, to_user_response
from account_service.models import User
from account_service.schemas import (
    Profile,
    UserCreatePayload,
    UserLoginPayload,
    UserQueryResponse,
    UserResponse,
    UserUpdatePayload,
)
from account_service.selectors import select_user
from account_service.utils import get_password_hash, verify_password

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)

TAKEN = "is already taken"
NOT_FOUND = "not found"
BLANK = "can't be blank"

# Columns that cannot be set to null through an update
REQUIRED_ON_UPDATE = ("username", "email", "password")


# --- Lookups ---

def _first_user(db: Session, *criteria) -> Optional[UserQueryResponse]:
    row = db.execute(select_user().where(*criteria)).first()
    if row is None:
        return None
    return UserQueryResponse.model_validate(dict(row._mapping))


def get_user_by_email(db: Session, email: str) -> Optional[UserQueryResponse]:
    return _first_user(db, User.email == email)


def get_user_by_username(db: Session, username: str) -> Optional[UserQueryResponse]:
    return _first_user(db, User.username == username)


def get_user_by_email_or_404(db: Session, email: str) -> Union[UserQueryResponse, Failure]:
    user = get_user_by_email(db, email)
    if user is None:
        logger.warning(f"No user found for email: {email}")
        return Failure(404, {"email": NOT_FOUND})
    return user


def get_user_by_username_or_404(db: Session, username: str) -> Union[UserQueryResponse, Failure]:
    user = get_user_by_username(db, username)
    if user is None:
        logger.warning(f"No user found for username: {username}")
        return Failure(404, {"username": NOT_FOUND})
    return user


# --- Uniqueness ---

def is_email_unique(db: Session, email: str) -> bool:
    return get_user_by_email(db, email) is None


def is_username_unique(db: Session, username: str) -> bool:
    return get_user_by_username(db, username) is None


def check_user_uniqueness(db: Session, payload: UserCreatePayload) -> Union[UserCreatePayload, Failure]:
    """Returns the payload if email and username are both free, else a 422 naming every taken field."""
    message = {}
    if not is_email_unique(db, payload.email):
        message["email"] = TAKEN
    if not is_username_unique(db, payload.username):
        message["username"] = TAKEN

    if message:
        logger.warning(f"Uniqueness conflict on {', '.join(message)} for username: {payload.username}")
        return Failure(422, message)
    return payload


def _taken_by_other(found: Optional[UserQueryResponse], current_username: str) -> bool:
    return found is not None and found.username != current_username


def check_update_user_uniqueness(
    db: Session,
    payload: UserUpdatePayload,
    current_username: str,
) -> Union[UserUpdatePayload, Failure]:
    """
    Same contract as check_user_uniqueness, for the fields the update sets.
    The caller's own record never counts as a conflict.
    """
    message = {}
    if payload.email is not None and _taken_by_other(get_user_by_email(db, payload.email), current_username):
        message["email"] = TAKEN
    if payload.username is not None and _taken_by_other(get_user_by_username(db, payload.username), current_username):
        message["username"] = TAKEN

    if message:
        logger.warning(f"Update conflict on {', '.join(message)} for user: {current_username}")
        return Failure(422, message)
    return payload


# --- Payload transforms ---

def sanitize(payload: P) -> P:
    """
    Copy of the payload with every string field stripped; fields left unset stay unset.

    The trimmed values are validated again, so a field that is only
    whitespace fails its length constraint with a 422.
    """
    values = {
        name: value.strip() if isinstance(value, str) else value
        for name, value in payload.__dict__.items()
        if name in payload.model_fields_set
    }
    try:
        return type(payload).model_validate(values)
    except ValidationError as e:
        message = {
            str(err["loc"][0]): BLANK if err["type"] == "string_too_short" else err["msg"]
            for err in e.errors()
        }
        logger.warning(f"Rejected payload with invalid fields: {', '.join(message)}")
        raise ServiceError(422, message)


def create_hashed_user(payload: P) -> P:
    """Replaces the plain password with its bcrypt hash. No-op when the payload sets no password."""
    password = getattr(payload, "password", None)
    if password is None:
        return payload
    return payload.model_copy(update={"password": get_password_hash(password)})


def check_valid_password(payload: UserLoginPayload, user: UserQueryResponse) -> Union[UserQueryResponse, Failure]:
    if verify_password(payload.password, user.password):
        return user
    logger.warning(f"Invalid password for email: {user.email}")
    return Failure(401, {"password": "is invalid"})


# --- Persistence ---

def _commit_user(db: Session, user: User, payload: BaseModel, current_username: Optional[str] = None) -> UserQueryResponse:
    try:
        db.commit()
    except exc.IntegrityError as e:
        db.rollback()
        logger.warning(f"Unique constraint rejected write for username: {getattr(payload, 'username', None)}: {e.orig}")
        if current_username is None:
            raise_for_failure(check_user_uniqueness(db, payload))
        else:
            raise_for_failure(check_update_user_uniqueness(db, payload, current_username))
        raise ServiceError(422, {"user": TAKEN})
    db.refresh(user)
    return UserQueryResponse.model_validate(user)


def save_user(db: Session, payload: UserCreatePayload) -> UserQueryResponse:
    new_user = User(**payload.model_dump())
    db.add(new_user)
    return _commit_user(db, new_user, payload)


def update_user_details(db: Session, current_username: str, payload: UserUpdatePayload) -> UserQueryResponse:
    user = db.query(User).filter(User.username == current_username).first()
    if user is None:
        raise_for_failure(Failure(404, {"username": NOT_FOUND}))

    changes = payload.model_dump(exclude_unset=True)
    for name, value in changes.items():
        if value is None and name in REQUIRED_ON_UPDATE:
            continue
        setattr(user, name, value)
    return _commit_user(db, user, payload, current_username)


# --- Public operations ---

def create_user(db: Session, payload: UserCreatePayload) -> UserResponse:
    payload = sanitize(payload)
    logger.info(f"Registration attempt for username: {payload.username}")
    payload = raise_for_failure(check_user_uniqueness(db, payload))
    payload = create_hashed_user(payload)
    user = save_user(db, payload)
    logger.info(f"User created with ID: {user.id}")
    return to_user_response(user)


def login(db: Session, payload: UserLoginPayload) -> UserResponse:
    payload = sanitize(payload)
    logger.info(f"Login attempt for email: {payload.email}")
    user = raise_for_failure(get_user_by_email_or_404(db, payload.email))
    user = raise_for_failure(check_valid_password(payload, user))
    logger.info(f"Login successful for user_id: {user.id}")
    return to_user_response(user)


def get_current_user(db: Session, username: str) -> UserResponse:
    user = raise_for_failure(get_user_by_username_or_404(db, username))
    return to_user_response(user)


def update_user(db: Session, payload: UserUpdatePayload, current_username: str) -> UserResponse:
    payload = sanitize(payload)
    logger.info(f"Update attempt for user: {current_username}")
    payload = raise_for_failure(check_update_user_uniqueness(db, payload, current_username))
    payload = create_hashed_user(payload)
    user = update_user_details(db, current_username, payload)
    logger.info(f"User {user.id} updated")
    return to_user_response(user)


def get_user_id_by_username(db: Session, username: str) -> int:
    user = raise_for_failure(get_user_by_username_or_404(db, username))
    return user.id


def get_profile(db: Session, username: str, viewer_username: Optional[str] = None) -> Profile:
    found = raise_for_failure(get_user_by_username_or_404(db, username))
    author = to_author(db.get(User, found.id))
    return to_profile(author, viewer_username)
