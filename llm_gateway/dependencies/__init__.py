"""Dependencies package for FastAPI dependency injection."""

from .auth import (
    AdminUser,
    CurrentUser,
    OptionalUser,
    RequiredUser,
    get_admin_user,
    get_user_optional,
    get_user_required
)

__all__ = [
    "AdminUser",
    "CurrentUser",
    "OptionalUser",
    "RequiredUser",
    "get_admin_user",
    "get_user_optional",
    "get_user_required"
]
