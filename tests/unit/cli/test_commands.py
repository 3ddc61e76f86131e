import importlib
from pathlib import Path

import pytest

from conftest import png_bytes
from tilebridge.core.models import ExportSummary, ImportSummary, Scheme

cli_main = importlib.import_module("tilebridge.cli.main")


def test_import_command_builds_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    called: dict[str, object] = {}

    class StubPipeline:
        def __init__(self, config):  # type: ignore[no-untyped-def]
            called["config"] = config

        def run(self, input_dir, container):  # type: ignore[no-untyped-def]
            called["run"] = (input_dir, container)
            return ImportSummary(tiles=1)

    monkeypatch.setattr(cli_main, "ImportPipeline", StubPipeline)

    exit_code = cli_main.main(
        [
            "import",
            str(tmp_path / "tiles"),
            str(tmp_path / "out.mbtiles"),
            "--scheme",
            "tms",
            "--image-format",
            "jpeg",
            "--grid-callback",
            "false",
            "--name",
            "Test",
            "--no-optimize",
            "--verify-image-format",
        ]
    )

    assert exit_code == 0
    config = called["config"]
    assert config.scheme is Scheme.TMS
    assert config.image_format == "jpg"
    assert config.grid_callback == "false"
    assert config.name == "Test"
    assert config.optimize is False
    assert config.verify_image_format is True
    assert config.require_grid_data is False
    assert called["run"] == (tmp_path / "tiles", tmp_path / "out.mbtiles")


def test_export_command_defaults_output(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    called: dict[str, object] = {}

    class StubPipeline:
        def __init__(self, config):  # type: ignore[no-untyped-def]
            called["config"] = config

        def run(self, container, output_dir):  # type: ignore[no-untyped-def]
            called["run"] = (container, output_dir)
            return ExportSummary(output_dir=str(tmp_path / "out"))

    monkeypatch.setattr(cli_main, "ExportPipeline", StubPipeline)

    exit_code = cli_main.main(["export", str(tmp_path / "out.mbtiles"), "--no-grids"])

    assert exit_code == 0
    assert called["run"] == (tmp_path / "out.mbtiles", None)
    assert called["config"].include_grids is False


def test_config_file_is_overridden_by_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "tilebridge.yaml"
    config_path.write_text("scheme: wms\nimage_format: webp\n", encoding="utf-8")
    called: dict[str, object] = {}

    class StubPipeline:
        def __init__(self, config):  # type: ignore[no-untyped-def]
            called["config"] = config

        def run(self, *args):  # type: ignore[no-untyped-def]
            return ImportSummary()

    monkeypatch.setattr(cli_main, "ImportPipeline", StubPipeline)

    exit_code = cli_main.main(
        ["--config", str(config_path), "import", str(tmp_path), str(tmp_path / "x.mbtiles"), "--image-format", "png"]
    )

    assert exit_code == 0
    assert called["config"].scheme is Scheme.WMS
    assert called["config"].image_format == "png"


def test_invalid_config_file_returns_error(tmp_path: Path) -> None:
    config_path = tmp_path / "tilebridge.yaml"
    config_path.write_text("scheme: mercator\n", encoding="utf-8")

    assert cli_main.main(["--config", str(config_path), "metadata", str(tmp_path / "x.mbtiles")]) == 1


def test_end_to_end_commands(make_tree, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = make_tree({"0/0/0.png": png_bytes("z0"), "1/1/1.png": png_bytes("z1")})
    container = tmp_path / "world.mbtiles"

    assert cli_main.main(["import", str(source), str(container), "--name", "World"]) == 0
    assert cli_main.main(["metadata", str(container)]) == 0
    out = capsys.readouterr().out
    assert "name\tWorld" in out
    assert "maxzoom\t1" in out

    assert cli_main.main(["export", str(container), "--verbose"]) == 0
    assert (tmp_path / "world" / "1" / "1" / "1.png").read_bytes() == png_bytes("z1")

    # the default output directory now exists
    assert cli_main.main(["export", str(container)]) == 1


def test_failures_return_nonzero(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    assert cli_main.main(["import", str(empty), str(tmp_path / "out.mbtiles")]) == 1
    assert cli_main.main(["metadata", str(tmp_path / "missing.mbtiles")]) == 1
    assert cli_main.main(["export", str(tmp_path / "missing.mbtiles")]) == 1


def test_invalid_scheme_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["import", str(tmp_path), str(tmp_path / "x.mbtiles"), "--scheme", "quadkey"])

    assert excinfo.value.code == 2
