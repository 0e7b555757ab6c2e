"""Auth request and response models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from account_service.models.user import User


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_CamelModel):
    """Login credentials.

    All fields are optional at the schema level; the login handler reports
    missing values with its own messages.

    Attributes:
        email: Account email (case-insensitive)
        username: Account username (case-insensitive)
        password: Plain-text password
    """

    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(_CamelModel):
    """Body fallback for the refresh token when no cookie is sent.

    The token is left untyped; the route rejects non-string values as unauthorized.
    """

    refresh_token: Any = None


class TokenPair(_CamelModel):
    """An access token and the refresh token minted alongside it."""

    access_token: str
    refresh_token: str


class LoginData(TokenPair):
    """Payload of a successful login."""

    user: User
