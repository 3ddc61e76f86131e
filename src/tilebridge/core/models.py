"""Dataclasses describing core tilebridge entities."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

MAX_ZOOM = 31

IMAGE_FORMATS: Tuple[str, ...] = ("png", "jpg", "webp", "pbf")

# Callback values that switch JSONP wrapping off.
DISABLED_CALLBACKS = frozenset({"", "false", "null"})

# JSONP callback names: word characters, whitespace and `$=+,-./`
_CALLBACK_PATTERN = re.compile(r"^[\w\s$=+,\-./]+$")

MetadataSet = Dict[str, str]


class Scheme(str, Enum):
    """Directory addressing conventions for a tile pyramid."""

    XYZ = "xyz"
    TMS = "tms"
    WMS = "wms"
    AGS = "ags"

    def __str__(self) -> str:
        return self.value


class OpenMode(str, Enum):
    """How a container file is opened."""

    READ_ONLY = "r"
    READ_WRITE = "rw"
    CREATE_NEW = "create"


@dataclass(frozen=True, order=True)
class TileCoordinate:
    """A tile address in canonical xyz orientation (row counted from the top)."""

    zoom: int
    column: int
    row: int

    def in_pyramid(self) -> bool:
        """Return whether column and row fit the standard ``2**zoom`` bound."""

        if self.zoom < 0 or self.column < 0 or self.row < 0:
            return False
        limit = 1 << self.zoom
        return self.column < limit and self.row < limit

    def __str__(self) -> str:
        return f"{self.zoom}/{self.column}/{self.row}"


@dataclass
class TileRecord:
    """Raw tile bytes for a single coordinate."""

    coordinate: TileCoordinate
    data: bytes


@dataclass
class GridRecord:
    """A UTFGrid document and its optional ``data`` overlay."""

    coordinate: TileCoordinate
    grid: Dict[str, Any]
    data: Optional[Dict[str, Any]] = None

    def document(self) -> Dict[str, Any]:
        """Return the grid with the overlay embedded under ``data``."""

        payload = dict(self.grid)
        if self.data is not None:
            payload["data"] = dict(self.data)
        return payload


@dataclass
class ConversionConfig:
    """Options threaded through the import, export and metadata commands."""

    scheme: Scheme = Scheme.XYZ
    image_format: str = "png"
    grid_callback: str = "grid"
    name: Optional[str] = None
    description: Optional[str] = None
    batch_size: int = 1000
    include_grids: bool = True
    require_grid_data: bool = False
    verify_image_format: bool = False
    optimize: bool = True
    progress: bool = False

    def validate(self) -> None:
        """Normalize enum-like fields and reject unsupported values."""

        try:
            self.scheme = Scheme(str(self.scheme).lower())
        except ValueError as exc:
            choices = ", ".join(item.value for item in Scheme)
            raise ValueError(f"Unsupported scheme: {self.scheme} (expected one of {choices})") from exc
        fmt = normalize_format(self.image_format)
        if fmt not in IMAGE_FORMATS:
            raise ValueError(
                f"Unsupported image format: {self.image_format} (expected one of {', '.join(IMAGE_FORMATS)})"
            )
        self.image_format = fmt
        if self.grid_callback is None or self.grid_callback is False:
            self.grid_callback = ""
        self.grid_callback = str(self.grid_callback).strip()
        if callback_enabled(self.grid_callback) and not valid_callback(self.grid_callback):
            raise ValueError(f"Invalid grid callback name: {self.grid_callback!r}")
        if int(self.batch_size) < 1:
            raise ValueError("batch_size must be a positive integer")
        self.batch_size = int(self.batch_size)


@dataclass
class ImportSummary:
    """Counters reported after an import run."""

    tiles: int = 0
    grids: int = 0
    skipped: int = 0
    metadata: MetadataSet = field(default_factory=dict)


@dataclass
class ExportSummary:
    """Counters reported after an export run."""

    output_dir: str = ""
    tiles: int = 0
    grids: int = 0


def normalize_format(value: str) -> str:
    fmt = (value or "").strip().lower().lstrip(".")
    if fmt == "jpeg":
        return "jpg"
    return fmt


def callback_enabled(callback: Optional[str]) -> bool:
    """Return whether a JSONP callback name should be applied."""

    return (callback or "").strip() not in DISABLED_CALLBACKS


def valid_callback(callback: str) -> bool:
    return bool(_CALLBACK_PATTERN.match(callback))
