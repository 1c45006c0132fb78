"""Authentication router: registration, login, tokens and account management.

Handlers are plain functions so bcrypt hashing runs in the threadpool
instead of blocking the event loop.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from ..dependencies.auth import AdminUser, RequiredUser
from ..dependencies.services import SettingsDep, TokenServiceDep, UserStoreDep
from ..models.api_requests import (
    AuthResponse,
    ChangePasswordRequest,
    DeleteAccountRequest,
    LoginRequest,
    MessageResponse,
    PasswordValidationResponse,
    RefreshRequest,
    RegisterRequest,
    TokenRefreshResponse,
    UserInfo,
    UserListResponse,
    ValidatePasswordRequest
)
from ..utils.security import InvalidTokenError, validate_password_strength
from ..utils.user_store import (
    AccountProtectedError,
    InvalidCredentialsError,
    PasswordMismatchError,
    PasswordValidationError,
    User,
    UserExistsError,
    UserNotFoundError
)

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _user_info(user: User) -> UserInfo:
    return UserInfo(**user.public_dict())


def _error(status_code: int, message: str, error_type: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": {"message": message, "type": error_type}})


@auth_router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, users: UserStoreDep, tokens: TokenServiceDep):
    """Register a new user and return a token pair."""
    try:
        user = users.create_user(request.email, request.username, request.password)
    except UserExistsError as e:
        raise _error(status.HTTP_409_CONFLICT, str(e), "conflict")

    return AuthResponse(
        message="User registered successfully",
        user=_user_info(user),
        tokens=tokens.create_tokens(user.id, user.email, user.username, user.role)
    )


@auth_router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, users: UserStoreDep, tokens: TokenServiceDep):
    """Log in with email and password."""
    try:
        user = users.authenticate(request.email, request.password)
    except InvalidCredentialsError:
        logger.info("Failed login attempt")
        raise _error(status.HTTP_401_UNAUTHORIZED, "Login failed", "authentication_failed")

    return AuthResponse(
        message="Login successful",
        user=_user_info(user),
        tokens=tokens.create_tokens(user.id, user.email, user.username, user.role)
    )


@auth_router.post("/refresh", response_model=TokenRefreshResponse)
def refresh(request: RefreshRequest, users: UserStoreDep, tokens: TokenServiceDep):
    """Exchange a refresh token for a new token pair."""
    try:
        claims = tokens.decode_refresh_token(request.refresh_token)
    except InvalidTokenError as e:
        logger.info(f"Token refresh failed: {e}")
        raise _error(status.HTTP_401_UNAUTHORIZED, "Invalid refresh token", "authentication_failed")

    user = users.get_user(claims["sub"])
    if user is None:
        raise _error(status.HTTP_401_UNAUTHORIZED, "Invalid refresh token", "authentication_failed")

    return TokenRefreshResponse(
        message="Token refreshed successfully",
        tokens=tokens.create_tokens(user.id, user.email, user.username, user.role)
    )


@auth_router.get("/users", response_model=UserListResponse)
def list_users(_: AdminUser, users: UserStoreDep):
    """List all users without password hashes (admin only)."""
    records = [_user_info(user) for user in users.list_users()]
    return UserListResponse(users=records, total=len(records))


@auth_router.post("/change-password", response_model=MessageResponse)
def change_password(request: ChangePasswordRequest, current_user: RequiredUser, users: UserStoreDep):
    """Change the caller's password."""
    try:
        users.change_password(
            current_user.user_id,
            request.current_password,
            request.new_password,
            request.confirm_password
        )
    except (PasswordMismatchError, PasswordValidationError) as e:
        raise _error(status.HTTP_400_BAD_REQUEST, str(e), "invalid_request_error")
    except InvalidCredentialsError as e:
        raise _error(status.HTTP_401_UNAUTHORIZED, str(e), "authentication_failed")
    except UserNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, str(e), "not_found")

    return MessageResponse(message="Password changed successfully")


@auth_router.post("/delete-account", response_model=MessageResponse)
def delete_account(request: DeleteAccountRequest, current_user: RequiredUser, users: UserStoreDep):
    """Delete the caller's account after confirming the password."""
    try:
        users.delete_user(current_user.user_id, request.password)
    except AccountProtectedError as e:
        raise _error(status.HTTP_403_FORBIDDEN, str(e), "operation_not_allowed")
    except InvalidCredentialsError as e:
        raise _error(status.HTTP_401_UNAUTHORIZED, str(e), "authentication_failed")
    except UserNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, str(e), "not_found")

    return MessageResponse(message="Account deleted successfully")


@auth_router.post("/validate-password", response_model=PasswordValidationResponse)
def validate_password(request: ValidatePasswordRequest):
    is_valid, errors = validate_password_strength(request.password)
    return PasswordValidationResponse(is_valid=is_valid, errors=errors)


@auth_router.post("/init-admin", response_model=MessageResponse)
def init_admin(users: UserStoreDep, settings: SettingsDep):
    """Create the default admin account if no admin exists yet."""
    created = users.ensure_admin(
        settings.auth.default_admin_email,
        settings.auth.default_admin_username,
        settings.auth.default_admin_password
    )
    if created:
        return MessageResponse(
            message="Default admin user initialized",
            note="Check the server log for the admin account and change its password"
        )
    return MessageResponse(message="Admin user already exists")
