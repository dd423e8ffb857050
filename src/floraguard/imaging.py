"""Image input: files and data URLs to base64 payloads with their media type."""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ImagePayload:
    """Un-prefixed base64 bytes plus the media type the engine must declare."""

    data: str
    media_type: str = DEFAULT_MEDIA_TYPE


def parse_image(payload: str) -> ImagePayload:
    """Split a ``data:image/png;base64,...`` URL; bare base64 is taken as JPEG."""
    if payload.startswith("data:") and "," in payload:
        header, data = payload.split(",", 1)
        media_type = header[len("data:"):].split(";", 1)[0]
        if not media_type.startswith("image/"):
            media_type = DEFAULT_MEDIA_TYPE
        return ImagePayload(data, media_type)
    return ImagePayload(payload)


def load_image(path: Path) -> ImagePayload:
    """Read an image file. The media type comes from the file name; bytes are not validated."""
    media_type, _ = mimetypes.guess_type(path.name)
    if not media_type or not media_type.startswith("image/"):
        media_type = DEFAULT_MEDIA_TYPE
    return ImagePayload(base64.b64encode(path.read_bytes()).decode("ascii"), media_type)
