"""Validation utilities for editor inputs supplied by the host.

Images reach the editor as data URLs (the form produced by browser file
readers and by previous generation results) or as raw uploaded bytes. Both
paths are validated here before any surface is allocated, so the editor only
ever sees fully decoded images with known dimensions.
"""

import base64
import binascii
import io
import logging
import re

from PIL import Image, ImageOps, UnidentifiedImageError

from .models import PAINT_MODES, SELECT_MODES, TOOL_MODES

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


class ValidationError(Exception):
    """User-friendly validation error.

    This exception is raised when host-supplied input fails validation.
    The message is intended to be displayed directly to the user.
    """

    pass


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into its MIME type and decoded payload.

    Args:
        data_url: String of the form ``data:<mime>;base64,<payload>``

    Returns:
        Tuple of (mime_type, payload_bytes)

    Raises:
        ValidationError: If the string is not a base64 data URL
    """
    match = DATA_URL_PATTERN.match(data_url.strip()) if data_url else None
    if not match:
        raise ValidationError("Invalid image data format")

    mime_type, encoded = match.groups()
    try:
        payload = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Invalid image data format") from e

    return mime_type.lower(), payload


def load_image_bytes(raw: bytes, max_bytes: int, mime_type: str | None = None) -> Image.Image:
    """Decode raw image bytes into a fully loaded RGBA image.

    Args:
        raw: Encoded image bytes (PNG, JPEG, WebP, ...)
        max_bytes: Largest accepted payload size
        mime_type: Declared MIME type, checked when provided

    Returns:
        Decoded RGBA image with EXIF orientation applied

    Raises:
        ValidationError: If the payload is not an image, too large, or undecodable
    """
    if mime_type is not None and not mime_type.startswith("image/"):
        raise ValidationError("Please select an image file.")

    if len(raw) > max_bytes:
        logger.warning(f"Rejected image payload of {len(raw)} bytes (limit {max_bytes})")
        limit_mb = max_bytes // (1024 * 1024)
        raise ValidationError(f"Please select an image under {limit_mb} MB.")

    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except Image.DecompressionBombError as e:
        logger.warning(f"Rejected oversized image dimensions: {e}")
        raise ValidationError("Image dimensions are too large to edit.") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Failed to read image") from e

    image = ImageOps.exif_transpose(image)
    if image.mode != "RGBA":
        image = image.convert("RGBA")

    logger.debug(f"Decoded image {image.width}x{image.height}")
    return image


def decode_image_data_url(data_url: str, max_bytes: int) -> Image.Image:
    """Decode an image data URL into a fully loaded RGBA image.

    Args:
        data_url: Base64 data URL with an ``image/*`` MIME type
        max_bytes: Largest accepted decoded payload size

    Returns:
        Decoded RGBA image

    Raises:
        ValidationError: If the data URL or its content is invalid
    """
    mime_type, payload = parse_data_url(data_url)
    return load_image_bytes(payload, max_bytes, mime_type=mime_type)


def validate_tool(tool: str, allow_select: bool = True) -> str:
    """Validate a tool mode name.

    Raises:
        ValidationError: If the tool is unknown or unavailable in this profile
    """
    if tool not in TOOL_MODES:
        raise ValidationError(f"Unknown tool: {tool}")
    if tool == "select" and not allow_select:
        raise ValidationError("Smart select is not available in this editor")
    return tool


def validate_paint_mode(mode: str) -> str:
    """Validate a paint sub-mode name."""
    if mode not in PAINT_MODES:
        raise ValidationError(f"Unknown paint mode: {mode}")
    return mode


def validate_select_mode(mode: str) -> str:
    """Validate a select sub-mode name."""
    if mode not in SELECT_MODES:
        raise ValidationError(f"Unknown select mode: {mode}")
    return mode


def clamp_brush_size(size: float, min_size: int, max_size: int) -> int:
    """Clamp a requested brush diameter into the configured range.

    Args:
        size: Requested diameter in display pixels
        min_size: Smallest allowed diameter
        max_size: Largest allowed diameter

    Returns:
        Integer diameter within [min_size, max_size]
    """
    return max(min_size, min(max_size, int(round(size))))
