"""asyncpg pool for the account store and its schema migrations."""

from pathlib import Path
from typing import Optional

import asyncpg
import structlog

from account_service.config import get_settings
from account_service.errors import InternalError

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
DATABASE_UNAVAILABLE = "Database unavailable"

_CREATE_LEDGER = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        filename TEXT PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Return the shared pool.

    Raises:
        InternalError: If the pool was never created or has been closed
    """
    if _pool is None:
        logger.error("database_pool_missing")
        raise InternalError(DATABASE_UNAVAILABLE)
    return _pool


async def init_database() -> asyncpg.Pool:
    """Create the pool from the configured URL and sizing. Idempotent."""
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()
    try:
        _pool = await asyncpg.create_pool(
            settings.postgres_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
    except (asyncpg.PostgresError, OSError) as e:
        logger.error("database_pool_creation_failed", error=str(e), error_type=type(e).__name__)
        raise

    logger.info(
        "database_pool_created",
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    return _pool


async def close_database() -> None:
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("database_pool_closed")


async def run_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending ``*.sql`` files in filename order.

    Applied filenames are recorded in ``schema_migrations``; each pending file
    runs in its own transaction together with its ledger row, so a failed
    migration leaves neither its changes nor a record behind.

    Returns:
        Filenames applied by this call
    """
    if not migrations_dir.is_dir():
        logger.warning("migrations_directory_not_found", path=str(migrations_dir))
        return []

    files = sorted(migrations_dir.glob("*.sql"))
    pool = await get_pool()
    applied: list[str] = []

    async with pool.acquire() as conn:
        await conn.execute(_CREATE_LEDGER)
        done = {row["filename"] for row in await conn.fetch("SELECT filename FROM schema_migrations")}

        for path in files:
            if path.name in done:
                continue
            try:
                async with conn.transaction():
                    await conn.execute(path.read_text())
                    await conn.execute(
                        "INSERT INTO schema_migrations (filename) VALUES ($1)", path.name
                    )
            except asyncpg.PostgresError as e:
                logger.error("migration_failed", file=path.name, error=str(e))
                raise
            applied.append(path.name)
            logger.info("migration_applied", file=path.name)

    logger.info("migrations_complete", applied=len(applied))
    return applied
