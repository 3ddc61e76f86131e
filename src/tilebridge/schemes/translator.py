"""Translate canonical tile coordinates to and from on-disk path fragments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence, Tuple

from tilebridge.core.errors import PathFormatError
from tilebridge.core.models import MAX_ZOOM, Scheme, TileCoordinate
from tilebridge.logging import get_logger

LOGGER = get_logger(__name__)

_DECIMAL = re.compile(r"^[0-9]+$")
_HEX = re.compile(r"^[0-9A-Fa-f]+$")
_GROUP = re.compile(r"^[0-9]{3}$")

# wms fans column and bottom-origin row out into millions/thousands/units
# directories; only the row is bound to the zoom pyramid
_WMS_GROUPS = 3
_WMS_LIMIT = 1000**_WMS_GROUPS

_DEPTH = {
    Scheme.XYZ: 3,
    Scheme.TMS: 3,
    Scheme.WMS: 1 + 2 * _WMS_GROUPS,
    Scheme.AGS: 3,
}


def path_depth(scheme: Scheme) -> int:
    """Number of path fragments (directories plus file) a tile occupies."""

    return _DEPTH[Scheme(scheme)]


def flip_row(zoom: int, row: int) -> int:
    """Convert a row between top-origin (xyz) and bottom-origin (tms) numbering."""

    return (1 << zoom) - 1 - row


def split_leaf(name: str) -> Tuple[str, str]:
    """Split ``12.grid.json`` into ``("12", "grid.json")``."""

    stem, _, suffix = name.partition(".")
    return stem, suffix.lower()


def to_path(coordinate: TileCoordinate, scheme: Scheme, extension: str) -> Tuple[str, ...]:
    """Return the path fragments for ``coordinate`` under ``scheme``."""

    scheme = Scheme(scheme)
    zoom, column, row = coordinate.zoom, coordinate.column, coordinate.row
    if min(zoom, column, row) < 0 or zoom > MAX_ZOOM:
        raise PathFormatError(f"Coordinate out of range: {coordinate}")

    if scheme is Scheme.WMS:
        if row >= 1 << zoom:
            raise PathFormatError(f"Row outside the zoom {zoom} pyramid: {coordinate}")
        row = flip_row(zoom, row)
        if column >= _WMS_LIMIT or row >= _WMS_LIMIT:
            raise PathFormatError(f"Coordinate too large for the wms layout: {coordinate}")
        return (
            f"{zoom:02d}",
            *_wms_groups(column),
            *_wms_groups(row)[:-1],
            f"{row % 1000:03d}.{extension}",
        )

    if not coordinate.in_pyramid():
        raise PathFormatError(f"Coordinate outside the zoom {zoom} pyramid: {coordinate}")
    if scheme is Scheme.XYZ:
        return (str(zoom), str(column), f"{row}.{extension}")
    if scheme is Scheme.TMS:
        return (str(zoom), str(column), f"{flip_row(zoom, row)}.{extension}")
    if scheme is Scheme.AGS:
        return (f"L{zoom:02d}", f"R{row:08x}", f"C{column:08x}.{extension}")
    raise PathFormatError(f"Unsupported scheme: {scheme}")


def from_path(fragments: Sequence[str], scheme: Scheme) -> TileCoordinate:
    """Parse path fragments (relative to the pyramid root) into a coordinate.

    The file extension of the last fragment is ignored; callers classify it.
    """

    scheme = Scheme(scheme)
    parts = list(fragments)
    expected = path_depth(scheme)
    if len(parts) != expected:
        raise PathFormatError(
            f"Expected {expected} path components for the {scheme} scheme, got {len(parts)}: {'/'.join(parts)}"
        )
    leaf, _ = split_leaf(parts[-1])

    if scheme is Scheme.WMS:
        zoom = _zoom(parts[0])
        column = _join_groups(parts[1 : 1 + _WMS_GROUPS], "column")
        row = _join_groups([*parts[1 + _WMS_GROUPS : -1], leaf], "row")
        if row >= 1 << zoom:
            raise PathFormatError(f"Row {row} outside the zoom {zoom} pyramid")
        return TileCoordinate(zoom, column, flip_row(zoom, row))

    if scheme is Scheme.AGS:
        level = parts[0]
        if not level.startswith("L"):
            LOGGER.warning("You appear to be using an ags scheme on a non-ArcGIS Server cache")
        zoom = _zoom(level[1:] if level.startswith("L") else level)
        row = _integer(_strip_prefix(parts[1], "R"), "row", _HEX, 16)
        column = _integer(_strip_prefix(leaf, "C"), "column", _HEX, 16)
        return _bounded(TileCoordinate(zoom, column, row))

    zoom = _zoom(parts[0])
    column = _integer(parts[1], "column", _DECIMAL, 10)
    row = _integer(leaf, "row", _DECIMAL, 10)
    if scheme is Scheme.TMS:
        _bounded(TileCoordinate(zoom, column, row))
        row = flip_row(zoom, row)
    return _bounded(TileCoordinate(zoom, column, row))


@dataclass(frozen=True)
class SchemeTranslator:
    """Bind a scheme to the stateless path translation functions."""

    scheme: Scheme = Scheme.XYZ

    @property
    def depth(self) -> int:
        return path_depth(self.scheme)

    def to_path(self, coordinate: TileCoordinate, extension: str) -> Tuple[str, ...]:
        return to_path(coordinate, self.scheme, extension)

    def from_path(self, fragments: Sequence[str]) -> TileCoordinate:
        return from_path(fragments, self.scheme)


def _wms_groups(value: int) -> Tuple[str, str, str]:
    return (
        f"{value // 1000000:03d}",
        f"{(value // 1000) % 1000:03d}",
        f"{value % 1000:03d}",
    )


def _join_groups(groups: Sequence[str], label: str) -> int:
    value = 0
    for group in groups:
        if not _GROUP.match(group):
            raise PathFormatError(f"Invalid {label} group {group!r}: expected three digits")
        value = value * 1000 + int(group)
    return value


def _strip_prefix(text: str, prefix: str) -> str:
    if text[:1].upper() == prefix:
        return text[1:]
    return text


def _zoom(text: str) -> int:
    zoom = _integer(text, "zoom", _DECIMAL, 10)
    if zoom > MAX_ZOOM:
        raise PathFormatError(f"Zoom level {zoom} exceeds the maximum of {MAX_ZOOM}")
    return zoom


def _integer(text: str, label: str, pattern: re.Pattern, base: int) -> int:
    if not pattern.match(text):
        raise PathFormatError(f"Can't parse {label} component {text!r} as an integer")
    return int(text, base)


def _bounded(coordinate: TileCoordinate) -> TileCoordinate:
    if not coordinate.in_pyramid():
        raise PathFormatError(f"Coordinate outside the zoom {coordinate.zoom} pyramid: {coordinate}")
    return coordinate
