"""Tile container interfaces for tilebridge."""

from .base import TileStore
from .mbtiles import MBTilesStore

__all__ = ["MBTilesStore", "TileStore"]
