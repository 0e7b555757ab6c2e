"""Unit tests for the media upload service."""

import hashlib
import io
from unittest.mock import MagicMock, patch

import httpx
import pytest

from account_service.errors import InternalError
from account_service.services.media_service import MediaService, sign_params, stage_upload

_RealAsyncClient = httpx.AsyncClient


@pytest.fixture
def configured_settings(tmp_path):
    settings = MagicMock(
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key-123",
        cloudinary_api_secret="shh",
        media_upload_timeout=5,
        upload_temp_dir=str(tmp_path),
    )
    with patch("account_service.services.media_service.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def staged_file(tmp_path):
    path = tmp_path / "avatar.png"
    path.write_bytes(b"\x89PNG fake")
    return path


def _mock_transport(handler):
    def factory(*args, **kwargs):
        return _RealAsyncClient(*args, transport=httpx.MockTransport(handler), **kwargs)

    return patch("account_service.services.media_service.httpx.AsyncClient", side_effect=factory)


class TestSignParams:
    def test_sorted_pairs_plus_secret(self):
        expected = hashlib.sha1(b"a=1&timestamp=42shh").hexdigest()
        assert sign_params({"timestamp": 42, "a": 1}, "shh") == expected


class TestStageUpload:
    def test_copies_stream_under_random_name(self, tmp_path):
        path = stage_upload(io.BytesIO(b"data"), "photo.JPG", temp_dir=str(tmp_path))

        assert path.parent == tmp_path
        assert path.suffix == ".JPG"
        assert path.name != "photo.JPG"
        assert path.read_bytes() == b"data"


class TestUpload:
    async def test_success_returns_hosted_url_and_removes_file(self, configured_settings, staged_file):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(
                200,
                json={
                    "secure_url": "https://res.cloudinary.com/demo/avatar.png",
                    "public_id": "avatar",
                    "resource_type": "image",
                    "bytes": 9,
                },
            )

        with _mock_transport(handler):
            media = await MediaService().upload(staged_file)

        assert media.url == "https://res.cloudinary.com/demo/avatar.png"
        assert media.public_id == "avatar"
        assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/auto/upload"
        assert not staged_file.exists()

    async def test_provider_error_returns_none_and_removes_file(self, configured_settings, staged_file):
        with _mock_transport(lambda request: httpx.Response(500, json={"error": "boom"})):
            media = await MediaService().upload(staged_file)

        assert media is None
        assert not staged_file.exists()

    async def test_timeout_is_internal_error(self, configured_settings, staged_file):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with _mock_transport(handler):
            with pytest.raises(InternalError, match="timed out"):
                await MediaService().upload(staged_file)

        assert not staged_file.exists()

    async def test_unconfigured_returns_none(self, staged_file):
        settings = MagicMock(cloudinary_cloud_name="", cloudinary_api_key="", cloudinary_api_secret="")
        with patch("account_service.services.media_service.get_settings", return_value=settings):
            assert await MediaService().upload(staged_file) is None

        assert not staged_file.exists()

    async def test_no_path_returns_none(self, configured_settings):
        assert await MediaService().upload(None) is None
