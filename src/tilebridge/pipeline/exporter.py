"""Export an MBTiles container to a tile-pyramid directory."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from tilebridge.core.errors import ContainerError, TileIOError
from tilebridge.core.models import ConversionConfig, ExportSummary, MetadataSet, OpenMode, normalize_format
from tilebridge.grids.codec import encode_grid_file
from tilebridge.logging import get_logger
from tilebridge.schemes.translator import SchemeTranslator
from tilebridge.storage.mbtiles import MBTilesStore

LOGGER = get_logger(__name__)

METADATA_FILE = "metadata.json"
GRID_EXTENSION = "grid.json"


class ExportPipeline:
    """Write every tile (and grid) of a container into a fresh directory tree."""

    def __init__(self, config: ConversionConfig) -> None:
        config.validate()
        self._config = config
        self._translator = SchemeTranslator(config.scheme)

    def run(self, container: Path | str, output_dir: Optional[Path | str] = None) -> ExportSummary:
        """Export ``container`` into ``output_dir``.

        The output defaults to a directory named after the container stem. Any
        write failure aborts the export.
        """

        container = Path(container)
        if not container.is_file():
            raise ContainerError(f"Can't export from a file at path {container}")
        output = Path(output_dir) if output_dir is not None else container.with_suffix("")
        self._prepare_output(output)

        LOGGER.info(
            "Exporting MBTiles to disk",
            extra={"input": str(container), "output": str(output), "scheme": self._config.scheme.value},
        )
        summary = ExportSummary(output_dir=str(output))
        with MBTilesStore(container, OpenMode.READ_ONLY) as store:
            metadata = store.all_metadata()
            extension = normalize_format(metadata.get("format") or self._config.image_format)
            total = store.count_tiles()

            for coordinate in tqdm(
                store.iterate_tile_coordinates(),
                total=total,
                desc="Exporting tiles",
                unit=" tiles",
                disable=not self._config.progress,
            ):
                data = store.get_tile(coordinate)
                if data is None:
                    continue
                self._write(output, self._translator.to_path(coordinate, extension), data)
                summary.tiles += 1

            if self._config.include_grids:
                for coordinate in store.iterate_grid_coordinates():
                    record = store.get_grid(coordinate)
                    if record is None:
                        continue
                    payload = encode_grid_file(record.document(), self._config.grid_callback)
                    self._write(output, self._translator.to_path(coordinate, GRID_EXTENSION), payload)
                    summary.grids += 1

        self._write_metadata(output, metadata)
        LOGGER.info("export complete", extra={"tiles": summary.tiles, "grids": summary.grids})
        return summary

    def _prepare_output(self, output: Path) -> None:
        if output.exists() and (not output.is_dir() or any(output.iterdir())):
            raise TileIOError(f"Directory already exists: {output}")
        try:
            output.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise TileIOError(f"Can't create the output directory {output}: {exc}") from exc

    def _write(self, output: Path, fragments: tuple, payload: bytes) -> None:
        path = output.joinpath(*fragments)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            raise TileIOError(f"Can't write {path}: {exc}") from exc
        LOGGER.debug("wrote %s", path)

    def _write_metadata(self, output: Path, metadata: MetadataSet) -> None:
        path = output / METADATA_FILE
        try:
            path.write_text(json.dumps(metadata, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            raise TileIOError(f"Can't create metadata file {path}: {exc}") from exc
