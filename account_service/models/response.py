"""Response envelope shared by every successful endpoint."""

from typing import Any

from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Uniform success envelope.

    Attributes:
        status_code: HTTP status of the response
        data: Endpoint payload (models are dumped by alias)
        message: Human-readable summary
    """

    status_code: int
    data: Any = None
    message: str = "Success"

    @property
    def success(self) -> bool:
        """True for any non-error status."""
        return self.status_code < 400

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        data = self.data
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True)
        return {
            "statusCode": self.status_code,
            "data": data,
            "message": self.message,
            "success": self.success,
        }
