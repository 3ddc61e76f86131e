"""Web Mercator tile math used to derive container bounds."""

from __future__ import annotations

import math
from typing import Dict, Iterable, Tuple

MAX_LATITUDE = 85.0511

Bounds = Tuple[float, float, float, float]


def tile_to_lonlat(column: int, row: int, zoom: int) -> Tuple[float, float]:
    """Return the north-west corner of an xyz tile as (lon, lat)."""

    n = 2**zoom
    lon = column / n * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * row / n))))
    return lon, lat


def tile_range_bounds(zoom: int, min_column: int, max_column: int, min_row: int, max_row: int) -> Bounds:
    west, north = tile_to_lonlat(min_column, min_row, zoom)
    east, south = tile_to_lonlat(max_column + 1, max_row + 1, zoom)
    return (
        max(-180.0, west),
        max(-MAX_LATITUDE, south),
        min(180.0, east),
        min(MAX_LATITUDE, north),
    )


def union_bounds(bounds: Iterable[Bounds]) -> Bounds:
    items = list(bounds)
    if not items:
        return (-180.0, -MAX_LATITUDE, 180.0, MAX_LATITUDE)
    return (
        min(item[0] for item in items),
        min(item[1] for item in items),
        max(item[2] for item in items),
        max(item[3] for item in items),
    )


def center_of(bounds: Bounds, min_zoom: int, max_zoom: int) -> Tuple[float, float, int]:
    center_lon = (bounds[0] + bounds[2]) / 2.0
    center_lat = (bounds[1] + bounds[3]) / 2.0
    center_zoom = max(min_zoom, min(max_zoom, min_zoom + (max_zoom - min_zoom) // 2))
    return center_lon, center_lat, center_zoom


def format_bounds(bounds: Bounds) -> str:
    return ",".join(f"{value:.6f}" for value in bounds)


def format_center(center: Tuple[float, float, int]) -> str:
    return ",".join([f"{center[0]:.6f}", f"{center[1]:.6f}", str(center[2])])


class ZoomExtents:
    """Track the observed column/row range per zoom level."""

    def __init__(self) -> None:
        self._ranges: Dict[int, list] = {}

    def __bool__(self) -> bool:
        return bool(self._ranges)

    def add(self, zoom: int, column: int, row: int) -> None:
        current = self._ranges.get(zoom)
        if current is None:
            self._ranges[zoom] = [column, column, row, row]
            return
        current[0] = min(current[0], column)
        current[1] = max(current[1], column)
        current[2] = min(current[2], row)
        current[3] = max(current[3], row)

    @property
    def min_zoom(self) -> int:
        return min(self._ranges)

    @property
    def max_zoom(self) -> int:
        return max(self._ranges)

    def bounds(self) -> Bounds:
        return union_bounds(
            tile_range_bounds(zoom, *values) for zoom, values in sorted(self._ranges.items())
        )
