"""Issuing and rotating access/refresh token pairs.

An account has at most one valid refresh token: the one stored on its
record. Issuing a pair overwrites it, and rotation only succeeds while the
presented token still equals the stored one, so a consumed or logged-out
token can never be replayed even before it expires.
"""

import secrets
from typing import Optional
from uuid import UUID

import structlog

from account_service.errors import InternalError, UnauthorizedError
from account_service.models.auth import TokenPair
from account_service.models.user import User
from account_service.services.auth_service import AuthService
from account_service.services.user_service import UserService

logger = structlog.get_logger(__name__)

TOKEN_GENERATION_FAILED = "Something went wrong while generating refresh and access token"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
REFRESH_TOKEN_USED = "Refresh token is expired or used"


class TokenService:
    """Token issuer backed by the account's stored refresh token."""

    def __init__(
        self,
        user_service: Optional[UserService] = None,
        auth_service: Optional[AuthService] = None,
    ):
        self.auth_service = auth_service or AuthService()
        self.user_service = user_service or UserService(self.auth_service)

    async def issue(self, user: User, expected_refresh_token: Optional[str] = None) -> TokenPair:
        """Mint a token pair and make its refresh token the account's only one.

        Args:
            user: Verified account
            expected_refresh_token: For rotation, the token being replaced; the
                write only happens if it is still the stored one

        Returns:
            The new TokenPair

        Raises:
            InternalError: If signing or persisting fails
            UnauthorizedError: If a rotation lost the race to another one
        """
        try:
            access_token = self.auth_service.create_access_token(user)
            refresh_token = self.auth_service.create_refresh_token(user.id)
            stored = await self.user_service.set_refresh_token(
                user.id, refresh_token, expected=expected_refresh_token
            )
        except Exception as e:
            logger.error("token_generation_failed", user_id=str(user.id), error=str(e))
            raise InternalError(TOKEN_GENERATION_FAILED) from e

        if not stored:
            if expected_refresh_token is not None:
                logger.warning("refresh_token_superseded", user_id=str(user.id))
                raise UnauthorizedError(REFRESH_TOKEN_USED)
            logger.error("token_generation_failed", user_id=str(user.id), error="user_not_found")
            raise InternalError(TOKEN_GENERATION_FAILED)

        logger.info("token_pair_issued", user_id=str(user.id))
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def rotate(self, presented_refresh_token: str) -> tuple[User, TokenPair]:
        """Exchange a valid, current refresh token for a fresh pair.

        Args:
            presented_refresh_token: Token sent by the client

        Returns:
            Tuple of (User, new TokenPair)

        Raises:
            UnauthorizedError: If the token is invalid, belongs to no account,
                or is no longer the account's current token
        """
        try:
            payload = self.auth_service.validate_refresh_token(presented_refresh_token)
            user_id = UUID(str(payload["sub"]))
        except ValueError as e:
            logger.info("refresh_token_rejected", reason=str(e))
            raise UnauthorizedError(INVALID_REFRESH_TOKEN) from e

        result = await self.user_service.get_with_refresh_token(user_id)
        if result is None:
            logger.warning("refresh_token_unknown_user", user_id=str(user_id))
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user, stored_token = result

        if stored_token is None or not secrets.compare_digest(
            stored_token.encode("utf-8"), presented_refresh_token.encode("utf-8")
        ):
            logger.warning("refresh_token_reuse_detected", user_id=str(user.id))
            raise UnauthorizedError(REFRESH_TOKEN_USED)

        pair = await self.issue(user, expected_refresh_token=presented_refresh_token)
        logger.info("refresh_token_rotated", user_id=str(user.id))
        return user, pair
