"""FastAPI dependencies for authentication."""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from account_service.api.cookies import ACCESS_TOKEN_COOKIE
from account_service.errors import UnauthorizedError
from account_service.models.user import User
from account_service.services.auth_service import AuthService
from account_service.services.user_service import UserService

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Resolve the caller from the access-token cookie or a Bearer header.

    Args:
        request: Incoming request (for the cookie)
        credentials: Bearer token from Authorization header, if any

    Returns:
        Authenticated User model

    Raises:
        UnauthorizedError: If no token is sent, or it is invalid, expired,
            or names an unknown account
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token and credentials is not None:
        token = credentials.credentials

    if not token:
        raise UnauthorizedError("Unauthorized request")

    auth_service = AuthService()
    try:
        payload = auth_service.validate_access_token(token)
        user_id = UUID(str(payload["sub"]))
    except ValueError as e:
        logger.info("access_token_rejected", reason=str(e))
        raise UnauthorizedError("Invalid access token") from e

    user_service = UserService(auth_service)
    user = await user_service.get_by_id(user_id)

    if user is None:
        raise UnauthorizedError("Invalid access token")

    return user
