"""CLI entry point for tilebridge."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

from tilebridge import __version__
from tilebridge.config import apply_overrides, load_config
from tilebridge.core.errors import TileBridgeError
from tilebridge.core.models import IMAGE_FORMATS, ConversionConfig, Scheme
from tilebridge.logging import configure_logging, get_logger, resolve_level
from tilebridge.pipeline import ExportPipeline, ImportPipeline, MetadataReporter

LOGGER = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tilebridge",
        description="Convert tile pyramids between directories and MBTiles containers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    parser.add_argument("--log-level", default=None, help="Logging level (default: ERROR, INFO with --verbose)")
    parser.add_argument("--verbose", action="store_true", help="Show log info")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a conversion configuration file (YAML or JSON)",
    )

    shared = argparse.ArgumentParser(add_help=False)
    shared.add_argument("--verbose", action="store_true", default=argparse.SUPPRESS, help="Show log info")
    shared.add_argument(
        "--scheme",
        choices=[scheme.value for scheme in Scheme],
        default=None,
        help=(
            'Tiling scheme of the tiles. Default is "xyz" (z/x/y), "tms" is also z/x/y but uses a '
            'flipped y coordinate, "wms" replicates the MapServer WMS TileCache directory structure '
            '"z/000/000/x/000/000/y.png" and "ags" reads ArcGIS Server exploded caches'
        ),
    )
    shared.add_argument(
        "--image-format",
        choices=[*IMAGE_FORMATS, "jpeg"],
        default=None,
        help="The format of the image tiles (default: png)",
    )
    shared.add_argument(
        "--grid-callback",
        default=None,
        help='JSONP callback for UTFGrid tiles (default: grid); pass "" to write plain JSON',
    )
    shared.add_argument("--progress", action="store_const", const=True, default=None, help="Show progress bars")

    subcommands = parser.add_subparsers(dest="command", required=True)

    import_cmd = subcommands.add_parser("import", parents=[shared], help="Import a tile directory into MBTiles")
    import_cmd.add_argument("input", type=Path, help="Tile directory")
    import_cmd.add_argument("output", type=Path, help="MBTiles container to create or update")
    import_cmd.add_argument("--name", default=None, help="Tileset name (default: directory name)")
    import_cmd.add_argument("--description", default=None, help="Tileset description")
    import_cmd.add_argument("--batch-size", type=int, default=None, help="Writes per transaction (default: 1000)")
    import_cmd.add_argument(
        "--verify-image-format",
        action="store_const",
        const=True,
        default=None,
        help="Skip tiles whose content does not match --image-format",
    )
    import_cmd.add_argument(
        "--require-grid-data",
        action="store_const",
        const=True,
        default=None,
        help="Skip grids that carry no data overlay",
    )
    import_cmd.add_argument(
        "--no-optimize",
        dest="optimize",
        action="store_const",
        const=False,
        default=None,
        help="Skip ANALYZE/VACUUM after import",
    )

    export_cmd = subcommands.add_parser("export", parents=[shared], help="Export MBTiles into a tile directory")
    export_cmd.add_argument("input", type=Path, help="MBTiles container")
    export_cmd.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=None,
        help="Output directory (default: container name without extension)",
    )
    export_cmd.add_argument(
        "--no-grids",
        dest="include_grids",
        action="store_const",
        const=False,
        default=None,
        help="Do not write UTFGrid files",
    )

    metadata_cmd = subcommands.add_parser("metadata", help="Print the metadata of an MBTiles container")
    metadata_cmd.add_argument("--verbose", action="store_true", default=argparse.SUPPRESS, help="Show log info")
    metadata_cmd.add_argument("input", type=Path, help="MBTiles container")
    metadata_cmd.add_argument("--output", type=Path, default=None, help="Also write metadata.json to this path")

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(level=resolve_level(args.log_level, verbose=args.verbose), json_logs=args.log_json)

    try:
        config = _build_config(args)
    except (OSError, ValueError) as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    try:
        if args.command == "import":
            return _handle_import(args, config)
        if args.command == "export":
            return _handle_export(args, config)
        if args.command == "metadata":
            return _handle_metadata(args)
    except TileBridgeError as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return 1
    parser.error("Unknown command")
    return 1


def _build_config(args: argparse.Namespace) -> ConversionConfig:
    config = load_config(args.config) if args.config is not None else ConversionConfig()
    return apply_overrides(
        config,
        scheme=getattr(args, "scheme", None),
        image_format=getattr(args, "image_format", None),
        grid_callback=getattr(args, "grid_callback", None),
        progress=getattr(args, "progress", None),
        name=getattr(args, "name", None),
        description=getattr(args, "description", None),
        batch_size=getattr(args, "batch_size", None),
        verify_image_format=getattr(args, "verify_image_format", None),
        require_grid_data=getattr(args, "require_grid_data", None),
        optimize=getattr(args, "optimize", None),
        include_grids=getattr(args, "include_grids", None),
    )


def _handle_import(args: argparse.Namespace, config: ConversionConfig) -> int:
    summary = ImportPipeline(config).run(args.input, args.output)
    LOGGER.info(
        "import outputs",
        extra={"container": str(args.output), "tiles": summary.tiles, "grids": summary.grids},
    )
    return 0


def _handle_export(args: argparse.Namespace, config: ConversionConfig) -> int:
    summary = ExportPipeline(config).run(args.input, args.output)
    LOGGER.info(
        "export outputs",
        extra={"directory": summary.output_dir, "tiles": summary.tiles, "grids": summary.grids},
    )
    return 0


def _handle_metadata(args: argparse.Namespace) -> int:
    reporter = MetadataReporter()
    reporter.report(args.input)
    if args.output is not None:
        reporter.write(args.input, args.output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
