"""Utility modules for the LLM gateway."""

from .security import (
    InvalidTokenError,
    TokenService,
    hash_password,
    verify_password,
    validate_password_strength
)
from .user_store import (
    AccountProtectedError,
    InvalidCredentialsError,
    PasswordMismatchError,
    PasswordValidationError,
    User,
    UserExistsError,
    UserNotFoundError,
    UserStore,
    UserStoreError
)

__all__ = [
    "InvalidTokenError",
    "TokenService",
    "hash_password",
    "verify_password",
    "validate_password_strength",
    "AccountProtectedError",
    "InvalidCredentialsError",
    "PasswordMismatchError",
    "PasswordValidationError",
    "User",
    "UserExistsError",
    "UserNotFoundError",
    "UserStore",
    "UserStoreError"
]
