"""Core data models for tilebridge."""

from .errors import (
    ContainerError,
    EmptyInputError,
    GridFormatError,
    PathFormatError,
    TileBridgeError,
    TileIOError,
)
from .models import (
    ConversionConfig,
    ExportSummary,
    GridRecord,
    ImportSummary,
    MetadataSet,
    OpenMode,
    Scheme,
    TileCoordinate,
    TileRecord,
)

__all__ = [
    "ContainerError",
    "ConversionConfig",
    "EmptyInputError",
    "ExportSummary",
    "GridFormatError",
    "GridRecord",
    "ImportSummary",
    "MetadataSet",
    "OpenMode",
    "PathFormatError",
    "Scheme",
    "TileBridgeError",
    "TileCoordinate",
    "TileIOError",
    "TileRecord",
]
