"""User persistence service."""

import asyncio
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import structlog

from account_service.database import get_pool
from account_service.models.user import User
from account_service.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

_PUBLIC_COLUMNS = "id, username, email, full_name, avatar, cover_image, created_at, updated_at"


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        full_name=row["full_name"],
        avatar=row["avatar"],
        cover_image=row["cover_image"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def normalize_identifier(value: Optional[str]) -> Optional[str]:
    """Trim and lower-case a username or email; blank becomes None."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


class UserService:
    """Service for account records.

    Password hashes and refresh tokens only ever leave this class as separate
    return values, never as fields of ``User``.
    """

    def __init__(self, auth_service: Optional[AuthService] = None):
        self.auth_service = auth_service or AuthService()

    async def create_user(
        self,
        full_name: str,
        email: str,
        username: str,
        password: str,
        avatar: str,
        cover_image: str = "",
    ) -> User:
        """Create a new account with a hashed password.

        Args:
            full_name: Display name (trimmed)
            email: Unique email (trimmed, lower-cased)
            username: Unique username (trimmed, lower-cased)
            password: Plain-text password (will be hashed)
            avatar: URL of the uploaded avatar
            cover_image: URL of the uploaded cover image, empty if none

        Returns:
            Created User model

        Raises:
            asyncpg.UniqueViolationError: If the username or email is taken
        """
        user_id = uuid4()
        now = datetime.now(timezone.utc)
        password_hash = await asyncio.to_thread(self.auth_service.hash_password, password)

        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO users (id, username, email, full_name, avatar, cover_image,
                                   password_hash, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING {_PUBLIC_COLUMNS}
                """,
                user_id,
                normalize_identifier(username),
                normalize_identifier(email),
                full_name.strip(),
                avatar,
                cover_image or "",
                password_hash,
                now,
                now,
            )

        logger.info("user_created", user_id=str(user_id), username=row["username"])
        return _row_to_user(row)

    async def exists(self, username: Optional[str], email: Optional[str]) -> bool:
        """Check whether any account already uses the username or email.

        Both comparisons are case-insensitive.
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            found = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM users
                    WHERE LOWER(username) = $1 OR LOWER(email) = $2
                )
                """,
                normalize_identifier(username),
                normalize_identifier(email),
            )

        return bool(found)

    async def find_by_identifier(
        self, email: Optional[str] = None, username: Optional[str] = None
    ) -> list[tuple[User, str]]:
        """Find accounts matching the email or the username (case-insensitive).

        Args:
            email: Email to match, if given
            username: Username to match, if given

        Returns:
            List of (User, password_hash) pairs; normally zero or one entry
        """
        email = normalize_identifier(email)
        username = normalize_identifier(username)
        if email is None and username is None:
            return []

        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_PUBLIC_COLUMNS}, password_hash
                FROM users
                WHERE LOWER(email) = $1 OR LOWER(username) = $2
                """,
                email,
                username,
            )

        return [(_row_to_user(row), row["password_hash"]) for row in rows]

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get an account by id, without secrets.

        Args:
            user_id: User UUID

        Returns:
            User model or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            return None

        return _row_to_user(row)

    async def get_with_refresh_token(
        self, user_id: UUID
    ) -> Optional[tuple[User, Optional[str]]]:
        """Get an account together with its stored refresh token.

        Returns:
            Tuple of (User, refresh_token or None) or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_PUBLIC_COLUMNS}, refresh_token FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            return None

        return _row_to_user(row), row["refresh_token"]

    async def set_refresh_token(
        self,
        user_id: UUID,
        refresh_token: str,
        expected: Optional[str] = None,
    ) -> bool:
        """Store the account's refresh token in a single UPDATE.

        Args:
            user_id: Account to update
            refresh_token: New token value
            expected: When given, only update if the stored token still equals
                this value (compare-and-swap used by rotation)

        Returns:
            True if a row was updated
        """
        now = datetime.now(timezone.utc)
        pool = await get_pool()

        async with pool.acquire() as conn:
            if expected is None:
                result = await conn.execute(
                    """
                    UPDATE users SET refresh_token = $1, updated_at = $2
                    WHERE id = $3
                    """,
                    refresh_token,
                    now,
                    user_id,
                )
            else:
                result = await conn.execute(
                    """
                    UPDATE users SET refresh_token = $1, updated_at = $2
                    WHERE id = $3 AND refresh_token = $4
                    """,
                    refresh_token,
                    now,
                    user_id,
                    expected,
                )

        return result == "UPDATE 1"

    async def clear_refresh_token(self, user_id: UUID) -> bool:
        """Remove the account's refresh token, ending its session.

        Returns:
            True if the account exists
        """
        now = datetime.now(timezone.utc)
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE users SET refresh_token = NULL, updated_at = $1
                WHERE id = $2
                """,
                now,
                user_id,
            )

        cleared = result == "UPDATE 1"
        if not cleared:
            logger.warning("refresh_token_clear_not_found", user_id=str(user_id))
        return cleared
