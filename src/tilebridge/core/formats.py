"""Tile format helpers: file extensions and content sniffing."""

from __future__ import annotations

from typing import Optional, Tuple

from .models import normalize_format

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"
GZIP_MAGIC = b"\x1f\x8b"

_EXTENSIONS = {
    "png": ("png",),
    "jpg": ("jpg", "jpeg"),
    "webp": ("webp",),
    "pbf": ("pbf", "mvt"),
}


def extensions_for(image_format: str) -> Tuple[str, ...]:
    """Return the file suffixes accepted for an image format."""

    fmt = normalize_format(image_format)
    return _EXTENSIONS.get(fmt, (fmt,))


def detect_format(data: bytes) -> Optional[str]:
    """Guess the tile format from its leading bytes, or ``None`` if unknown."""

    if data.startswith(PNG_MAGIC):
        return "png"
    if data.startswith(JPEG_MAGIC):
        return "jpg"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data.startswith(GZIP_MAGIC):
        # gzip-compressed vector tiles
        return "pbf"
    return None


def matches_format(data: bytes, image_format: str) -> bool:
    """Return whether tile content agrees with the declared format.

    Uncompressed protobuf has no magic number, so unrecognised content is only
    accepted for ``pbf``.
    """

    fmt = normalize_format(image_format)
    detected = detect_format(data)
    if detected is None:
        return fmt == "pbf"
    return detected == fmt
