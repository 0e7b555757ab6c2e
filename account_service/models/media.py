"""Media upload models."""

from typing import Optional

from pydantic import BaseModel


class UploadedMedia(BaseModel):
    """A file hosted by the media service.

    Attributes:
        url: Public URL of the hosted file
        public_id: Provider identifier of the asset
        resource_type: Provider resource class (image, video, raw)
        bytes: Size of the stored asset
    """

    url: str
    public_id: Optional[str] = None
    resource_type: Optional[str] = None
    bytes: Optional[int] = None
