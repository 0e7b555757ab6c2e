"""Models package exports."""

from account_service.models.auth import LoginData, LoginRequest, RefreshRequest, TokenPair
from account_service.models.media import UploadedMedia
from account_service.models.response import ApiResponse
from account_service.models.user import User

__all__ = [
    "ApiResponse",
    "LoginData",
    "LoginRequest",
    "RefreshRequest",
    "TokenPair",
    "UploadedMedia",
    "User",
]
