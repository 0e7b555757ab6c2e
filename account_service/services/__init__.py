"""Services package exports."""

from account_service.services.auth_service import AuthService
from account_service.services.credential_service import CredentialService
from account_service.services.logging_service import configure_logging, get_logger
from account_service.services.media_service import MediaService
from account_service.services.token_service import TokenService
from account_service.services.user_service import UserService

__all__ = [
    "AuthService",
    "CredentialService",
    "MediaService",
    "TokenService",
    "UserService",
    "configure_logging",
    "get_logger",
]
