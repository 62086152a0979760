"""Utility functions for the account service: password hashing and JWT handling."""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from dotenv import load_dotenv
from jose import JWTError, jwt
from passlib.context import CryptContext

# Load environment variables from .env
load_dotenv()

logger = logging.getLogger(__name__)

# --- Security configuration ---
SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    logger.warning("JWT_SECRET_KEY is not set. Using an insecure default key for development.")
    SECRET_KEY = "insecure_default_secret_change_me"

ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

# bcrypt work factor
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Checks a plain password against a stored hash. A malformed hash is a mismatch."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Password verification failed on an unreadable hash: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hashes a plain password with bcrypt."""
    return pwd_context.hash(password)


# --- JWT utilities ---
def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Builds a signed JWT for the given claims with an expiry timestamp.

    Args:
        data: Claims to include in the token (e.g. {'sub': user_id}).
        expires_delta: Lifetime override; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        The encoded JWT string.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    """
    Decodes and validates a JWT.

    Returns:
        The payload if the signature is valid and the token has not expired,
        otherwise None.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token decoding failed: {e}")
        return None
