"""Exception hierarchy shared by the conversion engine."""

from __future__ import annotations


class TileBridgeError(RuntimeError):
    """Base class for every fatal or recoverable conversion failure."""


class PathFormatError(TileBridgeError):
    """Raised when a directory path cannot be parsed under the active scheme."""


class GridFormatError(TileBridgeError):
    """Raised for malformed JSONP/JSON grids or reserved-key collisions."""


class EmptyInputError(TileBridgeError):
    """Raised when an import finds no usable tiles."""


class ContainerError(TileBridgeError):
    """Raised when the MBTiles container cannot be opened, created or read."""


class TileIOError(TileBridgeError):
    """Raised on file system failures that abort a conversion."""
