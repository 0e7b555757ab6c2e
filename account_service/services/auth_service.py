"""Authentication service for JWT tokens and password hashing."""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import bcrypt
import jwt
import structlog

from account_service.config import get_settings
from account_service.models.user import User

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


class AuthService:
    """Password hashing plus signing and verification of both token classes.

    Access and refresh tokens are signed with different secrets and carry
    different lifetimes, so a token of one class never validates as the other.
    """

    def __init__(self):
        self.settings = get_settings()

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against

        Returns:
            True if the password matches, False otherwise
        """
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))

    def create_access_token(self, user: User) -> str:
        """Create a signed, short-lived access token.

        Args:
            user: Account the token proves (id goes in the 'sub' claim)

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        minutes = self.settings.access_token_expiry_minutes
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "full_name": user.full_name,
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
        }
        token = jwt.encode(
            payload, self.settings.access_token_secret, algorithm=JWT_ALGORITHM
        )
        logger.debug(
            "access_token_created",
            user_id=str(user.id),
            expires_minutes=minutes,
        )
        return token

    def create_refresh_token(self, user_id: UUID) -> str:
        """Create a signed, long-lived refresh token.

        Each token gets a random 'jti' so two tokens minted for the same
        user within the same second still differ.

        Args:
            user_id: Account the token belongs to

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        days = self.settings.refresh_token_expiry_days
        payload = {
            "sub": str(user_id),
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + timedelta(days=days),
        }
        token = jwt.encode(
            payload, self.settings.refresh_token_secret, algorithm=JWT_ALGORITHM
        )
        logger.debug(
            "refresh_token_created",
            user_id=str(user_id),
            expires_days=days,
        )
        return token

    def validate_access_token(self, token: str) -> dict:
        """Decode and validate an access token.

        Raises:
            ValueError: If the token is invalid, expired, or malformed
        """
        return self._decode(token, self.settings.access_token_secret, "access")

    def validate_refresh_token(self, token: str) -> dict:
        """Decode and validate a refresh token's signature and expiry.

        This does not check whether the token is still the account's current
        one; that is the token service's job.

        Raises:
            ValueError: If the token is invalid, expired, or malformed
        """
        return self._decode(token, self.settings.refresh_token_secret, "refresh")

    def _decode(self, token: str, secret: str, kind: str) -> dict:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ValueError(f"The {kind} token has expired")
        except jwt.InvalidTokenError as e:
            raise ValueError(f"Invalid {kind} token: {e}")
