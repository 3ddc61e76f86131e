"""SQLite-backed MBTiles container."""

from __future__ import annotations

import json
import sqlite3
import zlib
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Set

from tilebridge.core.errors import ContainerError, GridFormatError
from tilebridge.core.models import GridRecord, MetadataSet, OpenMode, TileCoordinate, TileRecord
from tilebridge.grids.codec import split_grid_data
from tilebridge.logging import get_logger
from tilebridge.schemes.translator import flip_row

from .base import TileStore

LOGGER = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tiles (
    zoom_level INTEGER,
    tile_column INTEGER,
    tile_row INTEGER,
    tile_data BLOB
);
CREATE TABLE IF NOT EXISTS metadata (
    name TEXT,
    value TEXT
);
CREATE TABLE IF NOT EXISTS grids (
    zoom_level INTEGER,
    tile_column INTEGER,
    tile_row INTEGER,
    grid BLOB
);
CREATE TABLE IF NOT EXISTS grid_data (
    zoom_level INTEGER,
    tile_column INTEGER,
    tile_row INTEGER,
    key_name TEXT,
    key_json TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS name ON metadata (name);
CREATE UNIQUE INDEX IF NOT EXISTS tile_index ON tiles (zoom_level, tile_column, tile_row);
CREATE UNIQUE INDEX IF NOT EXISTS grid_index ON grids (zoom_level, tile_column, tile_row);
CREATE UNIQUE INDEX IF NOT EXISTS grid_data_index ON grid_data
    (zoom_level, tile_column, tile_row, key_name);
"""

REQUIRED_TABLES = ("tiles", "metadata")


class MBTilesStore(TileStore):
    """Tiles, UTFGrids and metadata in a single MBTiles file.

    Rows are persisted bottom-origin (TMS) as MBTiles readers expect, while the
    public API takes and returns canonical top-origin coordinates. Writes are
    committed every ``batch_size`` operations and on :meth:`close`.
    """

    def __init__(
        self,
        path: Path | str,
        mode: OpenMode = OpenMode.READ_ONLY,
        *,
        batch_size: int = 1000,
    ) -> None:
        self.path = Path(path)
        self.mode = OpenMode(mode)
        self._batch_size = max(1, int(batch_size))
        self._connection: Optional[sqlite3.Connection] = None
        self._pending = 0
        self._tables: Set[str] = set()
        self._views: Set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self) -> "MBTilesStore":
        if self._connection is not None:
            return self
        if self.mode is OpenMode.CREATE_NEW:
            if self.path.exists():
                raise ContainerError(f"Container already exists: {self.path}")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ContainerError(f"Can't create directory for {self.path}: {exc}") from exc
        elif not self.path.is_file():
            raise ContainerError(f"Container not found: {self.path}")

        try:
            if self.mode is OpenMode.READ_ONLY:
                uri = f"{self.path.resolve().as_uri()}?mode=ro"
                self._connection = sqlite3.connect(uri, uri=True)
            else:
                self._connection = sqlite3.connect(str(self.path))
                self._optimize_connection()
            if self.mode is OpenMode.CREATE_NEW:
                self._connection.executescript(SCHEMA)
            self._tables = self._load_tables()
            self._validate()
            if self.mode is OpenMode.READ_WRITE:
                self._connection.executescript(SCHEMA)
                self._tables = self._load_tables()
        except sqlite3.Error as exc:
            self._discard()
            raise ContainerError(f"Can't open {self.path} as an MBTiles container: {exc}") from exc
        except ContainerError:
            self._discard()
            raise

        LOGGER.debug("opened container", extra={"path": str(self.path), "mode": self.mode.value})
        return self

    def close(self) -> None:
        if self._connection is None:
            return
        try:
            self.flush()
        finally:
            self._discard()

    def __enter__(self) -> "MBTilesStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def flush(self) -> None:
        """Commit the current write batch."""

        connection = self._require_connection()
        try:
            connection.commit()
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't commit writes to {self.path}: {exc}") from exc
        if self._pending:
            LOGGER.debug("committed batch", extra={"operations": self._pending})
        self._pending = 0

    def optimize(self) -> None:
        """Run ANALYZE and VACUUM on the container."""

        connection = self._require_connection()
        self.flush()
        LOGGER.info("SQLite analyse")
        LOGGER.info("SQLite vacuum")
        try:
            connection.execute("ANALYZE;")
            connection.execute("VACUUM;")
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't optimize {self.path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------
    def put_tile(self, record: TileRecord) -> None:
        coordinate = record.coordinate
        self._write(
            "INSERT OR REPLACE INTO tiles (zoom_level, tile_column, tile_row, tile_data) VALUES (?, ?, ?, ?)",
            (*self._write_key(coordinate), sqlite3.Binary(record.data)),
        )

    def get_tile(self, coordinate: TileCoordinate) -> Optional[bytes]:
        row = self._query_one(
            "SELECT tile_data FROM tiles WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?",
            self._key(coordinate),
        )
        if row is None:
            return None
        return bytes(row[0])

    def iterate_tile_coordinates(self) -> Iterator[TileCoordinate]:
        yield from self._iterate_coordinates("tiles")

    def count_tiles(self) -> int:
        row = self._query_one("SELECT COUNT(*) FROM tiles", ())
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # Grids
    # ------------------------------------------------------------------
    def put_grid(self, record: GridRecord) -> None:
        grid, data = split_grid_data(record.document())
        key = self._write_key(record.coordinate)
        compressed = zlib.compress(json.dumps(grid, separators=(",", ":")).encode("utf-8"))
        self._write(
            "INSERT OR REPLACE INTO grids (zoom_level, tile_column, tile_row, grid) VALUES (?, ?, ?, ?)",
            (*key, sqlite3.Binary(compressed)),
        )
        self._write(
            "DELETE FROM grid_data WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?",
            key,
        )
        for name, value in (data or {}).items():
            self._write(
                "INSERT OR REPLACE INTO grid_data (zoom_level, tile_column, tile_row, key_name, key_json)"
                " VALUES (?, ?, ?, ?, ?)",
                (*key, str(name), json.dumps(value, separators=(",", ":"))),
            )

    def get_grid(self, coordinate: TileCoordinate) -> Optional[GridRecord]:
        if "grids" not in self._tables:
            return None
        key = self._key(coordinate)
        row = self._query_one(
            "SELECT grid FROM grids WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?",
            key,
        )
        if row is None:
            return None
        try:
            grid = json.loads(zlib.decompress(bytes(row[0])).decode("utf-8"))
        except (zlib.error, UnicodeDecodeError, ValueError) as exc:
            raise ContainerError(f"Corrupt grid at {coordinate} in {self.path}: {exc}") from exc
        if not isinstance(grid, dict):
            raise ContainerError(f"Grid at {coordinate} in {self.path} is not a JSON object")
        grid, embedded = split_grid_data(grid)
        data = self._grid_data(key)
        if embedded:
            data = {**embedded, **(data or {})}
        return GridRecord(coordinate=coordinate, grid=grid, data=data)

    def iterate_grid_coordinates(self) -> Iterator[TileCoordinate]:
        if "grids" not in self._tables:
            return
        yield from self._iterate_coordinates("grids")

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    def set_metadata(self, key: str, value: str) -> None:
        self._write(
            "INSERT OR REPLACE INTO metadata (name, value) VALUES (?, ?)",
            (str(key), "" if value is None else str(value)),
        )

    def get_metadata(self, key: str) -> Optional[str]:
        row = self._query_one("SELECT value FROM metadata WHERE name = ?", (key,))
        if row is None:
            return None
        return row[0]

    def all_metadata(self) -> MetadataSet:
        connection = self._require_connection()
        try:
            rows = connection.execute("SELECT name, value FROM metadata").fetchall()
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't read metadata from {self.path}: {exc}") from exc
        return {str(name): "" if value is None else str(value) for name, value in rows}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _optimize_connection(self) -> None:
        connection = self._require_connection()
        connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA journal_mode=DELETE")

    def _load_tables(self) -> Set[str]:
        connection = self._require_connection()
        rows = connection.execute(
            "SELECT name, type FROM sqlite_master WHERE type IN ('table', 'view')"
        ).fetchall()
        self._views = {name for name, kind in rows if kind == "view"}
        return {name for name, _ in rows}

    def _validate(self) -> None:
        missing = [table for table in REQUIRED_TABLES if table not in self._tables]
        if missing:
            raise ContainerError(f"{self.path} is not a valid MBTiles container (missing {', '.join(missing)})")
        if self.mode is not OpenMode.READ_ONLY and "tiles" in self._views:
            raise ContainerError(f"{self.path} stores tiles in a view and can only be opened read-only")

    def _write_key(self, coordinate: TileCoordinate) -> tuple:
        zoom, column, row = coordinate.zoom, coordinate.column, coordinate.row
        if zoom < 0 or column < 0 or not 0 <= row < 1 << zoom:
            raise ContainerError(f"Can't store {coordinate}: outside the zoom {zoom} pyramid")
        return self._key(coordinate)

    def _key(self, coordinate: TileCoordinate) -> tuple:
        return (coordinate.zoom, coordinate.column, flip_row(coordinate.zoom, coordinate.row))

    def _iterate_coordinates(self, table: str) -> Iterator[TileCoordinate]:
        connection = self._require_connection()
        try:
            cursor = connection.execute(
                f"SELECT zoom_level, tile_column, tile_row FROM {table} "
                "ORDER BY zoom_level, tile_column, tile_row"
            )
            for zoom, column, row in cursor:
                yield TileCoordinate(int(zoom), int(column), flip_row(int(zoom), int(row)))
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't read {table} from {self.path}: {exc}") from exc

    def _grid_data(self, key: tuple) -> Optional[Dict[str, Any]]:
        if "grid_data" not in self._tables:
            return None
        connection = self._require_connection()
        try:
            rows = connection.execute(
                "SELECT key_name, key_json FROM grid_data "
                "WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?",
                key,
            ).fetchall()
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't read grid data from {self.path}: {exc}") from exc
        if not rows:
            return None
        data: Dict[str, Any] = {}
        for name, payload in rows:
            try:
                data[name] = json.loads(payload)
            except ValueError as exc:
                raise GridFormatError(f"Can't parse grid data {name!r}: {exc}") from exc
        return data

    def _write(self, sql: str, params: tuple) -> None:
        connection = self._require_connection()
        if self.mode is OpenMode.READ_ONLY:
            raise ContainerError(f"{self.path} is open read-only")
        try:
            connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't write to {self.path}: {exc}") from exc
        self._pending += 1
        if self._pending >= self._batch_size:
            self.flush()

    def _query_one(self, sql: str, params: tuple) -> Optional[tuple]:
        connection = self._require_connection()
        try:
            return connection.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise ContainerError(f"Can't read from {self.path}: {exc}") from exc

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise ContainerError(f"Container {self.path} is not open")
        return self._connection

    def _discard(self) -> None:
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._pending = 0
