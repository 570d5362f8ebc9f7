"""Request/result models shared by the resolver, clients and relay."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class PredictionRequest:
    """An image to classify, as received from the caller."""
    content: bytes
    filename: str = "upload.jpg"
    media_type: str = "application/octet-stream"

    def __post_init__(self):
        # Empty names/types from browsers fall back to the upload defaults
        if not self.filename:
            object.__setattr__(self, "filename", "upload.jpg")
        if not self.media_type:
            object.__setattr__(self, "media_type", "application/octet-stream")


@dataclass(frozen=True)
class FilePart:
    """One file entry of a multipart body."""
    field: str
    filename: str
    content: bytes
    media_type: str = "application/octet-stream"


@dataclass(frozen=True)
class MultipartPayload:
    """Caller-built multipart body, sent verbatim."""
    files: Tuple[FilePart, ...]
    data: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_image(cls, request: PredictionRequest, field_name: str = "file") -> "MultipartPayload":
        return cls(files=(FilePart(field_name, request.filename, request.content, request.media_type),))

    def to_httpx(self) -> Dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.post``."""
        files = [
            (part.field, (part.filename, part.content, part.media_type))
            for part in self.files
        ]
        kwargs: Dict[str, Any] = {"files": files}
        if self.data:
            kwargs["data"] = dict(self.data)
        return kwargs


class ResolverOptions(BaseModel):
    """Per-call resolver settings."""
    max_retries_per_attempt: int = Field(default=2, ge=0)
    timeout_ms: int = Field(default=30000, gt=0)
    initial_delay_ms: int = Field(default=500, ge=0)
    auth_token: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class PredictionResult(BaseModel):
    """Normalized prediction outcome."""
    success: bool
    status: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    raw_response: Any = None
    message: str = ""
    encoding: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "PredictionResult":
        """Failure carries only the diagnostic message."""
        return cls(success=False, message=message or "Unknown error")
