"""Media upload service for the Cloudinary upload API."""

import hashlib
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional
from uuid import uuid4

import httpx
import structlog

from account_service.config import get_settings
from account_service.errors import InternalError
from account_service.models.media import UploadedMedia

logger = structlog.get_logger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"


def sign_params(params: dict, api_secret: str) -> str:
    """Compute a Cloudinary request signature.

    Parameters are sorted by name, joined as ``key=value`` pairs with ``&``,
    suffixed with the API secret and SHA-1 hashed.
    """
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def stage_upload(stream: BinaryIO, filename: Optional[str], temp_dir: Optional[str] = None) -> Path:
    """Copy an incoming upload to the temp directory.

    The original filename only contributes its suffix; the stored name is
    random so concurrent uploads never collide.

    Returns:
        Path of the staged file
    """
    directory = Path(temp_dir or get_settings().upload_temp_dir)
    directory.mkdir(parents=True, exist_ok=True)
    suffix = Path(filename).suffix if filename else ""
    path = directory / f"{uuid4().hex}{suffix}"
    with path.open("wb") as fh:
        shutil.copyfileobj(stream, fh)
    return path


class MediaService:
    """Uploads local files to Cloudinary and returns their hosted URL."""

    def __init__(self):
        self.settings = get_settings()

    async def upload(self, local_path: Optional[str | Path]) -> Optional[UploadedMedia]:
        """Upload a local file, removing it from disk afterwards.

        Args:
            local_path: Path of the staged file

        Returns:
            UploadedMedia, or None if the upload failed

        Raises:
            InternalError: If the upload service timed out
        """
        if not local_path:
            return None

        path = Path(local_path)
        try:
            return await self._upload(path)
        finally:
            path.unlink(missing_ok=True)

    async def _upload(self, path: Path) -> Optional[UploadedMedia]:
        settings = self.settings
        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            logger.error("media_upload_not_configured")
            return None

        params = {"timestamp": str(int(time.time()))}
        data = {
            **params,
            "api_key": settings.cloudinary_api_key,
            "signature": sign_params(params, settings.cloudinary_api_secret),
        }
        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=settings.cloudinary_cloud_name)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(settings.media_upload_timeout)
            ) as client:
                with path.open("rb") as fh:
                    response = await client.post(
                        url, data=data, files={"file": (path.name, fh)}
                    )
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as e:
            logger.error("media_upload_timeout", file=path.name)
            raise InternalError("Media upload timed out") from e
        except (httpx.HTTPError, ValueError, OSError) as e:
            logger.error(
                "media_upload_failed",
                file=path.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        hosted_url = body.get("secure_url") or body.get("url")
        if not hosted_url:
            logger.error("media_upload_missing_url", file=path.name)
            return None

        logger.info("media_uploaded", public_id=body.get("public_id"), bytes=body.get("bytes"))
        return UploadedMedia(
            url=hosted_url,
            public_id=body.get("public_id"),
            resource_type=body.get("resource_type"),
            bytes=body.get("bytes"),
        )
