"""Health check endpoint."""

import asyncpg
import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from account_service.database import get_pool
from account_service.errors import ApiError
from account_service.models.response import ApiResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/healthcheck", tags=["Health"])


async def database_reachable() -> bool:
    """Round-trip ``SELECT 1`` through the pool."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except (ApiError, asyncpg.PostgresError, OSError, TimeoutError) as e:
        logger.warning("database_unreachable", error=str(e), error_type=type(e).__name__)
        return False


@router.get("")
async def healthcheck() -> JSONResponse:
    """Report service and database status.

    Returns 200 when the database answers, 503 otherwise.
    """
    database_ok = await database_reachable()
    status_code = status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    body = ApiResponse(
        status_code=status_code,
        data={"database": "ok" if database_ok else "unavailable"},
        message="OK" if database_ok else "Database unavailable",
    )
    return JSONResponse(status_code=status_code, content=body.to_dict())
