"""Image upload handling: validate uploaded bytes and turn them into data URLs.

Diagnose requests and product images are stored as ``data:`` URLs, so
this module is the only place raw image bytes are inspected.
"""

import base64
import binascii
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from partshop.config import MAX_IMAGE_SIZE

__all__ = [
    "ImageUploadError",
    "image_to_data_url",
    "normalize_data_url",
    "split_data_url",
    "MAX_IMAGE_SIZE",
]

# Pillow format name -> MIME type for the formats we accept
_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
}


class ImageUploadError(ValueError):
    """Raised when an uploaded image is empty, too large or not an image."""
    pass


def _detect_mime(data: bytes) -> str:
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
            image_format = img.format
    except Image.DecompressionBombError as e:
        raise ImageUploadError("Image dimensions are too large.") from e
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ImageUploadError("File is not a valid image.") from e

    mime = _MIME_TYPES.get(image_format or "")
    if mime is None:
        raise ImageUploadError(f"Unsupported image format: {image_format}")
    return mime


def image_to_data_url(data: bytes, filename: Optional[str] = None) -> str:
    """Validate image bytes and encode them as a base64 data URL.

    Args:
        data: Raw file contents.
        filename: Original file name, only used in error messages.

    Raises:
        ImageUploadError: If the payload is empty, larger than
            MAX_IMAGE_SIZE, or not a supported image.
    """
    label = filename or "image"
    if not data:
        raise ImageUploadError(f"{label} is empty.")
    if len(data) > MAX_IMAGE_SIZE:
        size_mb = len(data) / (1024 * 1024)
        raise ImageUploadError(f"{label} is too large ({size_mb:.1f}MB). Please use an image smaller than 5MB.")

    mime = _detect_mime(data)
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_url(value: str) -> Tuple[str, bytes]:
    """Split ``data:<mime>;base64,<payload>`` into (mime, decoded bytes)."""
    if not value or not value.startswith("data:") or "," not in value:
        raise ImageUploadError("Expected a base64 data URL.")
    header, payload = value.split(",", 1)
    if not header.endswith(";base64"):
        raise ImageUploadError("Expected a base64 data URL.")
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageUploadError("Image data is not valid base64.") from e
    return header[len("data:"):-len(";base64")], decoded


def normalize_data_url(value: str) -> str:
    """Validate an incoming data URL and re-encode it with the detected MIME type."""
    _, decoded = split_data_url(value.strip() if value else value)
    return image_to_data_url(decoded)
