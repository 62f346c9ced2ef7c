from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from PIL import Image as PILImage
from pptx.parts.image import Image as PptxImage

from deckfill.core.config import DEFAULT_CONFIG, EngineConfig
from deckfill.core.errors import MediaDecodeError


@dataclass(frozen=True)
class ImagePayload:
    media_type: str
    data: bytes

    def __repr__(self) -> str:
        return f"ImagePayload(media_type={self.media_type!r}, {len(self.data)} bytes)"


def decode_data_uri(uri: str, *, config: EngineConfig = DEFAULT_CONFIG) -> ImagePayload:
    """Decode ``data:image/png;base64,....`` into an ImagePayload."""
    if not isinstance(uri, str) or not uri.startswith("data:"):
        raise MediaDecodeError("payload is not a data URI")
    header, sep, body = uri[5:].partition(",")
    if not sep:
        raise MediaDecodeError("data URI has no body")

    params = [p.strip() for p in header.split(";")]
    media_type = params[0].lower()
    if "base64" not in (p.lower() for p in params[1:]):
        raise MediaDecodeError("data URI is not base64 encoded")

    try:
        data = base64.b64decode("".join(body.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MediaDecodeError(f"invalid base64 body: {e}") from e

    payload = ImagePayload(media_type=media_type, data=data)
    check_payload(payload, config=config)
    return payload


def encode_data_uri(payload: ImagePayload) -> str:
    body = base64.b64encode(payload.data).decode("ascii")
    return f"data:{payload.media_type};base64,{body}"


def sniff_media_type(data: bytes) -> str:
    """Content type Pillow detects for `data`.

    Anything python-pptx cannot place in a picture part (non-images, WebP and
    other unsupported formats, decompression bombs) raises MediaDecodeError.
    """
    try:
        return PptxImage.from_blob(data).content_type
    except PILImage.DecompressionBombError as e:
        raise MediaDecodeError(f"image dimensions too large: {e}") from e
    except (OSError, ValueError, SyntaxError) as e:
        raise MediaDecodeError(f"payload is not a readable image: {e}") from e


def check_payload(payload: ImagePayload, *, config: EngineConfig = DEFAULT_CONFIG) -> str:
    """Validate an image payload; returns the sniffed content type."""
    if not payload.media_type.startswith("image/"):
        raise MediaDecodeError(f"unsupported media type {payload.media_type!r}")
    if not payload.data:
        raise MediaDecodeError("image payload is empty")
    if len(payload.data) > config.max_image_bytes:
        raise MediaDecodeError(
            f"image is {len(payload.data)} bytes, limit is {config.max_image_bytes}"
        )
    return sniff_media_type(payload.data)
