"""Protocol definitions for tile container components."""

from __future__ import annotations

from typing import Iterator, Optional, Protocol

from tilebridge.core.models import GridRecord, MetadataSet, TileCoordinate, TileRecord


class TileStore(Protocol):
    """Interface for a single-file container of tiles, grids and metadata."""

    def open(self) -> "TileStore":
        """Open the underlying container and return ``self``."""

    def close(self) -> None:
        """Flush buffered writes and release the container."""

    def put_tile(self, record: TileRecord) -> None:
        """Insert or replace the tile stored at the record's coordinate."""

    def get_tile(self, coordinate: TileCoordinate) -> Optional[bytes]:
        """Return the tile bytes at ``coordinate`` or ``None``."""

    def put_grid(self, record: GridRecord) -> None:
        """Insert or replace the grid (and its data overlay) at a coordinate."""

    def get_grid(self, coordinate: TileCoordinate) -> Optional[GridRecord]:
        """Return the grid stored at ``coordinate`` or ``None``."""

    def iterate_tile_coordinates(self) -> Iterator[TileCoordinate]:
        """Yield every stored tile coordinate in a stable order."""

    def iterate_grid_coordinates(self) -> Iterator[TileCoordinate]:
        """Yield every stored grid coordinate in a stable order."""

    def set_metadata(self, key: str, value: str) -> None:
        """Insert or replace a metadata entry."""

    def get_metadata(self, key: str) -> Optional[str]:
        """Return a metadata value or ``None``."""

    def all_metadata(self) -> MetadataSet:
        """Return every metadata entry."""
