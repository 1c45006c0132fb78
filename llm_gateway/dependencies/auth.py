"""FastAPI dependencies for JWT authentication."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ..utils.security import InvalidTokenError, TokenService
from ..utils.user_store import UserStore

logger = logging.getLogger(__name__)

# Security scheme for bearer token extraction
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Identity of the caller, taken from a verified access token."""

    user_id: str
    email: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _resolve_user(request: Request, token: str) -> Optional[CurrentUser]:
    """Decode an access token and confirm its user still exists.

    Raises:
        InvalidTokenError: If the token cannot be verified
    """
    tokens: TokenService = request.app.state.tokens
    users: UserStore = request.app.state.users

    claims = tokens.decode_access_token(token)
    user = users.get_user(claims["sub"])
    if user is None:
        return None

    return CurrentUser(user_id=user.id, email=user.email, username=user.username, role=user.role)


def get_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """Optional authentication dependency.

    Returns the caller when a valid token for an existing user is supplied and
    None otherwise. Never raises.
    """
    if credentials is None:
        return None

    try:
        user = _resolve_user(request, credentials.credentials)
    except InvalidTokenError as e:
        logger.debug(f"Optional auth failed, continuing without user: {e}")
        return None

    if user is None:
        logger.debug("Optional auth: user not found")
    return user


def get_user_required(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    """Required authentication dependency.

    Raises:
        HTTPException: 401 without a token, 403 for an invalid or expired one
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "message": "Access token is required. Provide via Authorization: Bearer <token> header",
                    "type": "authentication_required"
                }
            },
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        user = _resolve_user(request, credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"JWT verification failed: {e}")
        user = None

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": {"message": "Invalid or expired token", "type": "authentication_failed"}}
        )
    return user


def get_admin_user(user: CurrentUser = Depends(get_user_required)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": {"message": "Admin access required", "type": "insufficient_permissions"}}
        )
    return user


# Convenience type aliases for dependency injection
OptionalUser = Annotated[Optional[CurrentUser], Depends(get_user_optional)]
RequiredUser = Annotated[CurrentUser, Depends(get_user_required)]
AdminUser = Annotated[CurrentUser, Depends(get_admin_user)]
