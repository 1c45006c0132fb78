"""Password hashing, password strength rules and JWT handling."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple

import bcrypt
import jwt

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
SPECIAL_CHARACTER_PATTERN = re.compile(r'[!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>/?]')


class InvalidTokenError(ValueError):
    """Raised when a JWT is malformed, expired or of the wrong type."""


def _password_bytes(password: str) -> bytes:
    return password.encode('utf-8')[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        Hash suitable for storage
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode('utf-8'))
    except ValueError as e:
        logger.error(f"Error verifying password: {e}")
        return False


def validate_password_strength(password: str) -> Tuple[bool, List[str]]:
    """Check a password against the strength rules.

    Returns:
        Tuple of (is_valid, list of human readable problems)
    """
    errors = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password must be less than {MAX_PASSWORD_LENGTH} characters")
    if not re.search(r'[A-Z]', password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r'[a-z]', password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r'[0-9]', password):
        errors.append("Password must contain at least one number")
    if not SPECIAL_CHARACTER_PATTERN.search(password):
        errors.append("Password should contain at least one special character")

    return not errors, errors


class TokenService:
    """Issues and verifies access and refresh tokens.

    Access tokens carry the user's identity and role and are signed with the
    access secret. Refresh tokens only carry the user id and are signed with a
    separate secret, so one can never be used in place of the other.
    """

    ACCESS = "access"
    REFRESH = "refresh"

    def __init__(
        self,
        secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_token_minutes: int = 60,
        refresh_token_days: int = 7
    ):
        self.secret = secret
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_lifetime = timedelta(minutes=access_token_minutes)
        self.refresh_lifetime = timedelta(days=refresh_token_days)

    def create_tokens(self, user_id: str, email: str, username: str, role: str) -> Dict[str, str]:
        now = datetime.now(timezone.utc)

        access_payload = {
            "sub": user_id,
            "email": email,
            "username": username,
            "role": role,
            "type": self.ACCESS,
            "iat": now,
            "exp": now + self.access_lifetime,
        }
        refresh_payload = {
            "sub": user_id,
            "type": self.REFRESH,
            "iat": now,
            "exp": now + self.refresh_lifetime,
        }

        return {
            "access_token": jwt.encode(access_payload, self.secret, algorithm=self.algorithm),
            "refresh_token": jwt.encode(refresh_payload, self.refresh_secret, algorithm=self.algorithm),
            "token_type": "bearer",
        }

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

        if claims.get("type") != expected_type or not claims.get("sub"):
            raise InvalidTokenError("Invalid token")
        return claims

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.secret, self.ACCESS)

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.refresh_secret, self.REFRESH)
