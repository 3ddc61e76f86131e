"""Convert tile pyramids between directory trees and MBTiles containers."""

from __future__ import annotations

import importlib
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "ConversionConfig",
    "ExportPipeline",
    "GridRecord",
    "ImportPipeline",
    "MBTilesStore",
    "MetadataReporter",
    "Scheme",
    "SchemeTranslator",
    "TileCoordinate",
    "TileRecord",
    "TileStore",
    "load_config",
]

_MODULE_MAP = {
    "ConversionConfig": ("tilebridge.core", "ConversionConfig"),
    "ExportPipeline": ("tilebridge.pipeline", "ExportPipeline"),
    "GridRecord": ("tilebridge.core", "GridRecord"),
    "ImportPipeline": ("tilebridge.pipeline", "ImportPipeline"),
    "MBTilesStore": ("tilebridge.storage", "MBTilesStore"),
    "MetadataReporter": ("tilebridge.pipeline", "MetadataReporter"),
    "Scheme": ("tilebridge.core", "Scheme"),
    "SchemeTranslator": ("tilebridge.schemes", "SchemeTranslator"),
    "TileCoordinate": ("tilebridge.core", "TileCoordinate"),
    "TileRecord": ("tilebridge.core", "TileRecord"),
    "TileStore": ("tilebridge.storage", "TileStore"),
    "load_config": ("tilebridge.config", "load_config"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'tilebridge' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
