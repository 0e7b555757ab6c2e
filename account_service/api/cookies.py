"""HTTP cookie helpers for the token pair."""

from fastapi import Response

from account_service.config import get_settings
from account_service.models.auth import TokenPair

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    """Set both token cookies as httpOnly and secure.

    Each cookie lives as long as the token it carries.
    """
    settings = get_settings()
    lifetimes = {
        ACCESS_TOKEN_COOKIE: (tokens.access_token, settings.access_token_expiry_minutes * 60),
        REFRESH_TOKEN_COOKIE: (
            tokens.refresh_token,
            settings.refresh_token_expiry_days * 24 * 60 * 60,
        ),
    }
    for name, (value, max_age) in lifetimes.items():
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path="/",
            httponly=True,
            secure=settings.cookie_secure,
        )


def clear_auth_cookies(response: Response) -> None:
    """Remove both token cookies from the client."""
    settings = get_settings()
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=True,
            secure=settings.cookie_secure,
        )
