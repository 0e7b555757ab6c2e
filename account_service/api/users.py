"""Account session endpoints: register, login, logout, refresh."""

import asyncio
import functools
from typing import Optional

import asyncpg
import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from account_service.api.cookies import (
    REFRESH_TOKEN_COOKIE,
    clear_auth_cookies,
    set_auth_cookies,
)
from account_service.api.dependencies import get_current_user
from account_service.errors import (
    ApiError,
    BadRequestError,
    ConflictError,
    InternalError,
    UnauthorizedError,
)
from account_service.models.auth import LoginData, LoginRequest, RefreshRequest
from account_service.models.response import ApiResponse
from account_service.models.user import User
from account_service.services.auth_service import BCRYPT_MAX_PASSWORD_BYTES, AuthService
from account_service.services.credential_service import CredentialService
from account_service.services.media_service import MediaService, stage_upload
from account_service.services.token_service import INVALID_REFRESH_TOKEN, TokenService
from account_service.services.user_service import UserService, normalize_identifier

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])

REGISTRATION_FAILED = "Something went wrong while registering the user"


def error_boundary(operation: str):
    """Log and re-raise any failure of an endpoint, unchanged.

    Classified ``ApiError``s are logged at info level; anything else is
    logged as an error and left for the application's catch-all handler.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except ApiError as e:
                logger.info(
                    f"{operation}_rejected",
                    status_code=e.status_code,
                    reason=e.message,
                )
                raise
            except Exception as e:
                logger.error(
                    f"{operation}_error",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

        return wrapper

    return decorator


def _envelope(status_code: int, data, message: str) -> JSONResponse:
    body = ApiResponse(status_code=status_code, data=data, message=message)
    return JSONResponse(status_code=status_code, content=body.to_dict())


async def _upload_file(media_service: MediaService, upload: Optional[UploadFile]):
    if upload is None or not upload.filename:
        return None
    local_path = await asyncio.to_thread(stage_upload, upload.file, upload.filename)
    return await media_service.upload(local_path)


@router.post("/register", status_code=status.HTTP_201_CREATED)
@error_boundary("register")
async def register(
    full_name: Optional[str] = Form(None, alias="fullName"),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
) -> JSONResponse:
    """Create an account with an avatar and an optional cover image.

    Returns:
        201 with the new account (no password hash, no refresh token)

    Raises:
        BadRequestError: Missing/blank fields, no avatar, or avatar upload failed
        ConflictError: Username or email already registered
        InternalError: The account could not be stored or read back
    """
    fields = [full_name, email, username, password]
    if not all(fields):
        raise BadRequestError("All fields are required")

    if any(not field.strip() for field in fields):
        raise BadRequestError("All fields must be non-empty strings")

    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise BadRequestError(
            f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
        )

    auth_service = AuthService()
    user_service = UserService(auth_service)

    if await user_service.exists(username=username, email=email):
        raise ConflictError("User with email or username already exists")

    if avatar is None or not avatar.filename:
        raise BadRequestError("Avatar file is required")

    media_service = MediaService()
    uploaded_avatar = await _upload_file(media_service, avatar)
    if uploaded_avatar is None:
        raise BadRequestError("Error while uploading avatar")

    uploaded_cover = await _upload_file(media_service, cover_image)

    try:
        user = await user_service.create_user(
            full_name=full_name,
            email=email,
            username=username,
            password=password,
            avatar=uploaded_avatar.url,
            cover_image=uploaded_cover.url if uploaded_cover else "",
        )
    except asyncpg.UniqueViolationError as e:
        raise ConflictError("User with email or username already exists") from e
    except Exception as e:
        logger.error("user_create_failed", error=str(e), error_type=type(e).__name__)
        raise InternalError(REGISTRATION_FAILED) from e

    created = await user_service.get_by_id(user.id)
    if created is None:
        raise InternalError(REGISTRATION_FAILED)

    logger.info("user_registered", user_id=str(created.id), username=created.username)
    return _envelope(status.HTTP_201_CREATED, created, "User registered successfully")


@router.post("/login")
@error_boundary("login")
async def login(request: LoginRequest) -> JSONResponse:
    """Log in with email or username plus password.

    Returns:
        200 with the account and both tokens; the tokens are also set as
        httpOnly, secure cookies

    Raises:
        BadRequestError: Password or identifier missing
        NotFoundError: No account matches the identifier
        UnauthorizedError: Wrong password
    """
    if not request.password:
        raise BadRequestError("Password is required")

    email = normalize_identifier(request.email)
    username = normalize_identifier(request.username)
    if email is None and username is None:
        raise BadRequestError("Either email or username is required")

    auth_service = AuthService()
    user_service = UserService(auth_service)
    credential_service = CredentialService(user_service, auth_service)
    token_service = TokenService(user_service, auth_service)

    user = await credential_service.verify(request.password, email=email, username=username)
    tokens = await token_service.issue(user)

    logged_in = await user_service.get_by_id(user.id) or user

    logger.info("user_logged_in", user_id=str(user.id), username=user.username)
    data = LoginData(
        user=logged_in,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
    response = _envelope(status.HTTP_200_OK, data, "User logged in successfully")
    set_auth_cookies(response, tokens)
    return response


@router.post("/logout")
@error_boundary("logout")
async def logout(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """End the caller's session and clear both cookies."""
    user_service = UserService()
    await user_service.clear_refresh_token(current_user.id)

    logger.info("user_logged_out", user_id=str(current_user.id))
    response = _envelope(status.HTTP_200_OK, {}, "User logged out")
    clear_auth_cookies(response)
    return response


@router.post("/refresh-token")
@error_boundary("refresh_token")
async def refresh_access_token(
    request: Request,
    body: Optional[RefreshRequest] = None,
) -> JSONResponse:
    """Exchange the current refresh token for a new token pair.

    The token is read from the refresh cookie, falling back to the JSON body.

    Raises:
        UnauthorizedError: Token missing, invalid, unknown, or already used
    """
    incoming = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not incoming and body is not None:
        incoming = body.refresh_token

    if not incoming:
        raise UnauthorizedError("unauthorized request")
    if not isinstance(incoming, str):
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    auth_service = AuthService()
    token_service = TokenService(UserService(auth_service), auth_service)
    _, tokens = await token_service.rotate(incoming)

    response = _envelope(status.HTTP_200_OK, tokens, "Access token refreshed")
    set_auth_cookies(response, tokens)
    return response


@router.get("/current-user")
@error_boundary("current_user")
async def get_current_account(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Return the authenticated account."""
    return _envelope(status.HTTP_200_OK, current_user, "Current user fetched successfully")
