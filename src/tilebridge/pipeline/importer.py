"""Import a tile-pyramid directory into an MBTiles container."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

from tqdm import tqdm

from tilebridge.core.errors import EmptyInputError, GridFormatError, PathFormatError, TileIOError
from tilebridge.core.formats import extensions_for, matches_format
from tilebridge.core.geo import ZoomExtents, center_of, format_bounds, format_center
from tilebridge.core.models import (
    ConversionConfig,
    GridRecord,
    ImportSummary,
    MetadataSet,
    OpenMode,
    TileCoordinate,
    TileRecord,
)
from tilebridge.grids.codec import decode_grid_file, merge_grid_data, split_grid_data
from tilebridge.logging import get_logger
from tilebridge.schemes.translator import SchemeTranslator, split_leaf
from tilebridge.storage.mbtiles import MBTilesStore

LOGGER = get_logger(__name__)

METADATA_FILE = "metadata.json"
GRID_SUFFIXES = ("grid.json", "json")
OVERLAY_SUFFIX = "data.json"


@dataclass(frozen=True)
class DiscoveredFile:
    """A leaf file whose path parsed under the active scheme."""

    path: Path
    coordinate: TileCoordinate
    suffix: str


@dataclass
class ClassifiedFiles:
    tiles: List[DiscoveredFile]
    grids: List[DiscoveredFile]
    overlays: Dict[TileCoordinate, Path]
    skipped: int = 0


class ImportPipeline:
    """Walk a tile directory, ingest tiles and grids, and derive metadata."""

    def __init__(self, config: ConversionConfig) -> None:
        config.validate()
        self._config = config
        self._translator = SchemeTranslator(config.scheme)

    def run(self, input_dir: Path | str, container: Path | str) -> ImportSummary:
        """Import ``input_dir`` into ``container`` and return the run summary.

        An existing container is reopened read-write so re-running an import
        overwrites coordinates instead of duplicating them.
        """

        input_dir = Path(input_dir)
        container = Path(container)
        if not input_dir.is_dir():
            raise TileIOError(f"Can only import from a directory: {input_dir}")

        LOGGER.info(
            "Importing disk to MBTiles",
            extra={"input": str(input_dir), "output": str(container), "scheme": self._config.scheme.value},
        )
        discovered, skipped = self.discover(input_dir)
        classified = self.classify(discovered)
        classified.skipped += skipped
        if not classified.tiles:
            raise EmptyInputError(
                f"No {self._config.image_format} tiles found in {input_dir} under the {self._config.scheme} scheme"
            )

        summary = ImportSummary(skipped=classified.skipped)
        extents = ZoomExtents()
        mode = OpenMode.READ_WRITE if container.exists() else OpenMode.CREATE_NEW
        with MBTilesStore(container, mode, batch_size=self._config.batch_size) as store:
            self._ingest_tiles(store, classified.tiles, extents, summary)
            if summary.tiles == 0:
                raise EmptyInputError(f"None of the tiles in {input_dir} could be imported")
            self._ingest_grids(store, classified, summary)
            LOGGER.debug("tiles (and grids) inserted.")

            metadata = self.summarize(extents, self._read_metadata_file(input_dir), input_dir)
            for key, value in sorted(metadata.items()):
                store.set_metadata(key, value)
            store.flush()
            if self._config.optimize:
                store.optimize()

        summary.metadata = metadata
        LOGGER.info(
            "import complete",
            extra={"tiles": summary.tiles, "grids": summary.grids, "skipped": summary.skipped},
        )
        return summary

    # ------------------------------------------------------------------
    # Discover / classify
    # ------------------------------------------------------------------
    def discover(self, input_dir: Path) -> Tuple[List[DiscoveredFile], int]:
        """Return the leaf files whose paths parse, plus the number skipped."""

        discovered: List[DiscoveredFile] = []
        skipped = 0
        max_depth = self._translator.depth - 1
        for root, dirnames, filenames in os.walk(input_dir, followlinks=True):
            depth = len(Path(root).relative_to(input_dir).parts)
            if depth >= max_depth:
                # tiles sit exactly max_depth directories down
                dirnames[:] = []
            else:
                dirnames[:] = sorted(name for name in dirnames if not name.startswith("."))
            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                path = Path(root) / filename
                parts = path.relative_to(input_dir).parts
                if parts == (METADATA_FILE,):
                    continue
                try:
                    coordinate = self._translator.from_path(parts)
                except PathFormatError as exc:
                    LOGGER.warning("skipping %s: %s", "/".join(parts), exc)
                    skipped += 1
                    continue
                discovered.append(DiscoveredFile(path, coordinate, split_leaf(filename)[1]))

        if not discovered:
            raise EmptyInputError(f"No files in {input_dir} match the {self._config.scheme} directory layout")
        LOGGER.info("discovered tile files", extra={"count": len(discovered), "skipped": skipped})
        return discovered, skipped

    def classify(self, discovered: List[DiscoveredFile]) -> ClassifiedFiles:
        image_suffixes = extensions_for(self._config.image_format)
        classified = ClassifiedFiles(tiles=[], grids=[], overlays={})
        for item in discovered:
            if item.suffix in image_suffixes:
                classified.tiles.append(item)
            elif item.suffix == OVERLAY_SUFFIX:
                classified.overlays[item.coordinate] = item.path
            elif item.suffix in GRID_SUFFIXES:
                classified.grids.append(item)
            else:
                LOGGER.warning(
                    "skipping %s: the filtered extension %s is different than the path's extension %s",
                    item.path,
                    self._config.image_format,
                    item.suffix or "(none)",
                )
                classified.skipped += 1
        return classified

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------
    def _ingest_tiles(
        self,
        store: MBTilesStore,
        tiles: List[DiscoveredFile],
        extents: ZoomExtents,
        summary: ImportSummary,
    ) -> None:
        for item in tqdm(tiles, desc="Inserting tiles", unit=" tiles", disable=not self._config.progress):
            try:
                data = item.path.read_bytes()
            except OSError as exc:
                LOGGER.warning("skipping unreadable tile %s: %s", item.path, exc)
                summary.skipped += 1
                continue
            if self._config.verify_image_format and not matches_format(data, self._config.image_format):
                LOGGER.warning("skipping %s: content is not %s", item.path, self._config.image_format)
                summary.skipped += 1
                continue
            coordinate = item.coordinate
            LOGGER.debug("Zoom: %s, Col: %s, Row: %s", coordinate.zoom, coordinate.column, coordinate.row)
            store.put_tile(TileRecord(coordinate=coordinate, data=data))
            extents.add(coordinate.zoom, coordinate.column, coordinate.row)
            summary.tiles += 1

    def _ingest_grids(self, store: MBTilesStore, classified: ClassifiedFiles, summary: ImportSummary) -> None:
        used_overlays = set()
        for item in tqdm(classified.grids, desc="Inserting grids", unit=" grids", disable=not self._config.progress):
            overlay_path = classified.overlays.get(item.coordinate)
            try:
                document = decode_grid_file(item.path.read_bytes(), self._config.grid_callback)
                if overlay_path is not None:
                    used_overlays.add(item.coordinate)
                    document = merge_grid_data(document, _load_overlay(overlay_path))
                grid, data = split_grid_data(document)
            except (OSError, GridFormatError) as exc:
                LOGGER.warning("skipping grid %s: %s", item.path, exc)
                summary.skipped += 1
                continue
            if self._config.require_grid_data and not data:
                LOGGER.warning("skipping grid %s: no data overlay", item.path)
                summary.skipped += 1
                continue
            store.put_grid(GridRecord(coordinate=item.coordinate, grid=grid, data=data))
            summary.grids += 1

        for coordinate, path in classified.overlays.items():
            if coordinate not in used_overlays:
                LOGGER.warning("skipping %s: no grid at %s", path, coordinate)
                summary.skipped += 1

    # ------------------------------------------------------------------
    # Summarize
    # ------------------------------------------------------------------
    def summarize(self, extents: ZoomExtents, overrides: MetadataSet, input_dir: Path) -> MetadataSet:
        """Derive metadata from observed tiles, then apply file and config overrides."""

        bounds = extents.bounds()
        metadata: MetadataSet = {
            "name": input_dir.resolve().name or "tiles",
            "type": "baselayer",
            "version": "1.0.0",
            "description": "",
            "format": self._config.image_format,
            "bounds": format_bounds(bounds),
            "center": format_center(center_of(bounds, extents.min_zoom, extents.max_zoom)),
            "minzoom": str(extents.min_zoom),
            "maxzoom": str(extents.max_zoom),
        }
        metadata.update(overrides)
        if self._config.name:
            metadata["name"] = self._config.name
        if self._config.description:
            metadata["description"] = self._config.description
        return metadata

    def _read_metadata_file(self, input_dir: Path) -> MetadataSet:
        path = input_dir / METADATA_FILE
        if not path.is_file():
            LOGGER.info("metadata.json was not found")
            return {}
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("ignoring unreadable %s: %s", path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("ignoring %s: not a JSON object", path)
            return {}
        LOGGER.info("metadata.json was restored")
        return {str(key): _metadata_value(value) for key, value in payload.items()}


def _load_overlay(path: Path) -> Dict[str, Any]:
    try:
        overlay = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise GridFormatError(f"Grid data overlay {path} is not valid JSON: {exc}") from exc
    if not isinstance(overlay, dict):
        raise GridFormatError(f"Grid data overlay {path} is not a JSON object")
    return overlay


def _metadata_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(item, (int, float)) for item in value):
        return ",".join(str(item) for item in value)
    return json.dumps(value)
