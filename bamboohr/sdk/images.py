"""Helpers for employee photo bytes.

BambooHR serves photos as raw image bytes. These helpers sniff the format
from magic numbers, validate the buffer and build data URIs for inlining.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

# Smallest buffer we accept as an image
MIN_IMAGE_BYTES = 10

# Largest buffer we inline as a data URI
MAX_INLINE_IMAGE_BYTES = 5 * 1024 * 1024


@dataclass
class ImageInfo:
    """Summary of a downloaded image."""

    format: str
    size: int
    size_formatted: str
    data_uri: str


def detect_image_type(data: bytes) -> str:
    """Return the MIME type for *data*, defaulting to JPEG."""
    if len(data) < 4:
        return "image/jpeg"

    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"GIF8":
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"

    # BambooHR's most common format
    return "image/jpeg"


def format_bytes(size: int) -> str:
    """Render a byte count as a short human-readable string (``1.5 MB``)."""
    if size <= 0:
        return "0 B"

    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 1):g} {unit}"
        value /= 1024
    return f"{round(value, 1):g} GB"


def validate_image_buffer(data: bytes | None) -> str | None:
    """Return a reason string if *data* is not usable, ``None`` otherwise."""
    if not data:
        return "Empty buffer received from API"
    if len(data) < MIN_IMAGE_BYTES:
        return "Buffer too small to be a valid image"
    return None


def create_data_uri(data: bytes) -> str:
    """Encode *data* as a ``data:`` URI with the sniffed MIME type."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{detect_image_type(data)};base64,{encoded}"


def get_image_info(data: bytes) -> ImageInfo:
    return ImageInfo(
        format=detect_image_type(data),
        size=len(data),
        size_formatted=format_bytes(len(data)),
        data_uri=create_data_uri(data),
    )
