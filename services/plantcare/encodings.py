"""Request encodings probed against the disease prediction endpoint.

Hosted model spaces disagree on how an image should be uploaded. The
resolver walks ``candidate_encodings()`` top to bottom: multipart uploads
under each common field name first, then base64 JSON bodies.
"""

import base64
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from plantcare.models import MultipartPayload, PredictionRequest

MULTIPART_FIELDS = ("file", "image", "img", "image_file", "upload", "data")
JSON_KEYS = ("image", "file", "data", "image_base64")

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Returns the image as a data URL
Encoder = Callable[[], str]


def to_data_url(request: PredictionRequest) -> str:
    """Encode the image as a ``data:<type>;base64,`` URL."""
    encoded = base64.b64encode(request.content).decode("ascii")
    return f"data:{request.media_type};base64,{encoded}"


def strip_data_url(value: str) -> str:
    """Drop the data-URL prefix, leaving the bare base64 text."""
    _, sep, rest = value.partition(",")
    return rest if sep and rest else value


def data_url_once(request: PredictionRequest) -> Encoder:
    """Encoder that base64-encodes the image on first use only."""
    cache: List[str] = []

    def encode() -> str:
        if not cache:
            cache.append(to_data_url(request))
        return cache[0]
    return encode


@dataclass(frozen=True)
class MultipartField:
    name: str

    @property
    def label(self) -> str:
        return f"multipart:{self.name}"

    def build(self, request: PredictionRequest, encode: Optional[Encoder] = None) -> Dict[str, Any]:
        return MultipartPayload.for_image(request, self.name).to_httpx()


@dataclass(frozen=True)
class JsonBase64:
    key: str
    with_prefix: bool
    nested: bool = False

    @property
    def label(self) -> str:
        path = f"data.{self.key}" if self.nested else self.key
        mode = "prefixed" if self.with_prefix else "raw"
        return f"json:{path}:{mode}"

    def body(self, request: PredictionRequest, encode: Optional[Encoder] = None) -> Dict[str, Any]:
        value = encode() if encode else to_data_url(request)
        if not self.with_prefix:
            value = strip_data_url(value)
        if self.nested:
            return {"data": {self.key: value}}
        return {self.key: value}

    def build(self, request: PredictionRequest, encode: Optional[Encoder] = None) -> Dict[str, Any]:
        return {"json": self.body(request, encode), "headers": dict(JSON_HEADERS)}


AttemptEncoding = Union[MultipartField, JsonBase64]


def multipart_encodings() -> List[MultipartField]:
    return [MultipartField(name) for name in MULTIPART_FIELDS]


def json_encodings() -> List[JsonBase64]:
    encodings = []
    for key in JSON_KEYS:
        for nested in (False, True):
            for with_prefix in (True, False):
                encodings.append(JsonBase64(key, with_prefix, nested))
    return encodings


def candidate_encodings() -> List[AttemptEncoding]:
    """Every encoding in priority order."""
    return [*multipart_encodings(), *json_encodings()]
