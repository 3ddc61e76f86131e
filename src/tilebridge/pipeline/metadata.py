"""Read-only reporting of container metadata."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, Optional, TextIO

from tilebridge.core.errors import TileIOError
from tilebridge.core.models import OpenMode
from tilebridge.logging import get_logger
from tilebridge.storage.mbtiles import MBTilesStore

LOGGER = get_logger(__name__)


class MetadataReporter:
    """Print or dump the metadata table of an MBTiles container."""

    def collect(self, container: Path | str) -> Dict[str, str]:
        with MBTilesStore(container, OpenMode.READ_ONLY) as store:
            metadata = store.all_metadata()
        return dict(sorted(metadata.items()))

    def report(self, container: Path | str, stream: Optional[TextIO] = None) -> Dict[str, str]:
        """Print ``key<TAB>value`` lines in key order and return the mapping."""

        out = stream or sys.stdout
        metadata = self.collect(container)
        for key, value in metadata.items():
            print(f"{key}\t{value}", file=out)
        return metadata

    def write(self, container: Path | str, destination: Path | str) -> Path:
        """Write the metadata as JSON; a directory destination receives ``metadata.json``."""

        metadata = self.collect(container)
        path = Path(destination)
        if path.is_dir():
            path = path / "metadata.json"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(metadata, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            raise TileIOError(f"Can't write metadata file {path}: {exc}") from exc
        LOGGER.info("metadata written", extra={"path": str(path)})
        return path
