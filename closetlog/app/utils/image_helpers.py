"""Image utilities for the Closetlog application.

Low-level helpers used by the image store and the vision adapter:
- Base64 / data URL decoding
- Format sniffing from base64 prefixes
- Pillow-based validation of uploaded bytes
"""

import base64
import binascii
import io
from typing import Tuple
from PIL import Image, UnidentifiedImageError

from app.core.exceptions import ValidationError

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

# Leading base64 characters of each format's magic number
BASE64_SIGNATURES = (
    ("/9j/", "image/jpeg"),
    ("iVBORw0KGgo", "image/png"),
    ("R0lGOD", "image/gif"),
    ("UklGR", "image/webp"),
)

FORMAT_EXTENSIONS = {
    "JPEG": ("jpg", "image/jpeg"),
    "MPO": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "GIF": ("gif", "image/gif"),
    "WEBP": ("webp", "image/webp"),
}


def strip_data_url(data: str) -> str:
    """Drop a ``data:image/...;base64,`` prefix if present."""
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def detect_base64_mime_type(data: str) -> str:
    """Guess the MIME type of base64 image data, defaulting to JPEG."""
    data = strip_data_url(data)
    for prefix, mime_type in BASE64_SIGNATURES:
        if data.startswith(prefix):
            return mime_type
    return "image/jpeg"


def decode_base64_image(data: str) -> bytes:
    """Decode base64 (optionally a data URL) into raw bytes."""
    try:
        return base64.b64decode(strip_data_url(data).strip(), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image data is not valid base64", field="image")


def validate_image(image_data: bytes, max_size: int = MAX_FILE_SIZE) -> Tuple[str, str]:
    """Check size and decodability; returns (extension, content type)."""
    if not image_data:
        raise ValidationError("Image is empty", field="image")
    if len(image_data) > max_size:
        raise ValidationError(f"Image too large. Maximum size: {max_size // (1024 * 1024)}MB", field="image")

    try:
        with Image.open(io.BytesIO(image_data)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError("Unsupported or corrupt image", field="image")

    if image_format not in FORMAT_EXTENSIONS:
        raise ValidationError(f"Unsupported image format: {image_format}", field="image")
    return FORMAT_EXTENSIONS[image_format]
