"""Security utilities for password hashing and JWT token management."""

import re
import secrets
import string
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from jwt import exceptions as jwt_exceptions

from hess.core.config import get_settings

settings = get_settings()

RECOVERY_TOKEN_TYPE = "recovery"


class PasswordValidationError(ValueError):
    """Raised when password validation fails."""

    pass


def validate_password(password: str) -> None:
    """Validate a self-chosen registration password.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Args:
        password: Plain text password to validate

    Raises:
        PasswordValidationError: If password does not meet requirements
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash.

    Identities created for reassigned contacts start without a usable
    password; those never verify.
    """
    if not hashed_password:
        return False
    password_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        return False


def generate_temporary_password(length: int = 20) -> str:
    """Random throwaway password for identities onboarded via recovery link."""
    alphabet = string.ascii_letters + string.digits
    body = "".join(secrets.choice(alphabet) for _ in range(length))
    # Guarantee every character class the intake validator asks for
    return f"{body}A1!"


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_recovery_token(user_id: str, email: str) -> str:
    """Create a single-purpose token embedded in password recovery links."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.recovery_token_expire_minutes)
    return jwt.encode(
        {
            "sub": user_id,
            "email": email,
            "type": RECOVERY_TOKEN_TYPE,
            "exp": expire,
            "jti": secrets.token_urlsafe(16),
        },
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> dict | None:
    """Decode and validate a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload if valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt_exceptions.PyJWTError:
        return None
