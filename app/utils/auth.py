"""
Authentication utilities with JWT tokens and bcrypt password hashing.

Uses industry-standard security practices:
- bcrypt with salt for password hashing, constant-time verification
- HS256 algorithm for JWT signing
- Configurable token expiration
- UTC timezone consistency
"""

import secrets
import uuid
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt

from app.config import settings


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a plain text password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed_password = bcrypt.hashpw(password=pwd_bytes, salt=salt)
    return hashed_password.decode("utf-8")


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with the given data."""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": datetime.now(UTC) + expires_delta})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_user_token(user_id: uuid.UUID, email: str) -> str:
    """Access token identifying a user by id."""
    return create_access_token(data={"sub": str(user_id), "email": email})


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT access token."""
    try:
        return jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def extract_user_id_from_token(token: str) -> uuid.UUID | None:
    """Extract the user id ("sub" claim) from a JWT token."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None


def generate_reset_token() -> str:
    """Opaque, URL-safe single-use token for password resets."""
    return secrets.token_urlsafe(32)
