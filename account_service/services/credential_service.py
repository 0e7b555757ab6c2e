"""Credential verification for login."""

import asyncio
from typing import Optional

import structlog

from account_service.errors import NotFoundError, UnauthorizedError
from account_service.models.user import User
from account_service.services.auth_service import AuthService
from account_service.services.user_service import UserService

logger = structlog.get_logger(__name__)


class CredentialService:
    """Resolves an email or username plus password to an account."""

    def __init__(
        self,
        user_service: Optional[UserService] = None,
        auth_service: Optional[AuthService] = None,
    ):
        self.auth_service = auth_service or AuthService()
        self.user_service = user_service or UserService(self.auth_service)

    async def verify(
        self,
        password: str,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> User:
        """Return the account proven by the credentials.

        Args:
            password: Plain-text password
            email: Account email, if logging in by email
            username: Account username, if logging in by username

        Returns:
            The matching User

        Raises:
            NotFoundError: If no account matches the identifier
            UnauthorizedError: If the password is wrong, or the identifiers
                point at more than one account
        """
        matches = await self.user_service.find_by_identifier(email=email, username=username)

        if not matches:
            logger.info("login_user_not_found")
            raise NotFoundError("User does not exist with provided credentials")

        if len(matches) > 1:
            logger.warning(
                "login_identifier_ambiguous",
                user_ids=[str(user.id) for user, _ in matches],
            )
            raise UnauthorizedError("Invalid credentials")

        user, password_hash = matches[0]

        if not await asyncio.to_thread(self.auth_service.verify_password, password, password_hash):
            logger.info("login_password_mismatch", user_id=str(user.id))
            raise UnauthorizedError("Invalid credentials")

        return user
