import io
import json
from pathlib import Path

import pytest

from tilebridge.core.errors import ContainerError
from tilebridge.core.models import OpenMode
from tilebridge.pipeline.metadata import MetadataReporter
from tilebridge.storage.mbtiles import MBTilesStore


@pytest.fixture()
def container(tmp_path: Path) -> Path:
    path = tmp_path / "tiles.mbtiles"
    with MBTilesStore(path, OpenMode.CREATE_NEW) as store:
        store.set_metadata("name", "World")
        store.set_metadata("format", "png")
        store.set_metadata("minzoom", "0")
    return path


def test_report_prints_sorted_pairs(container: Path) -> None:
    stream = io.StringIO()

    metadata = MetadataReporter().report(container, stream)

    assert stream.getvalue().splitlines() == ["format\tpng", "minzoom\t0", "name\tWorld"]
    assert list(metadata) == ["format", "minzoom", "name"]


def test_report_empty_metadata(tmp_path: Path) -> None:
    path = tmp_path / "empty.mbtiles"
    with MBTilesStore(path, OpenMode.CREATE_NEW):
        pass
    stream = io.StringIO()

    assert MetadataReporter().report(path, stream) == {}
    assert stream.getvalue() == ""


def test_report_defaults_to_stdout(container: Path, capsys: pytest.CaptureFixture[str]) -> None:
    MetadataReporter().report(container)

    assert "name\tWorld" in capsys.readouterr().out


def test_write_into_directory(container: Path, tmp_path: Path) -> None:
    target = tmp_path / "dump"
    target.mkdir()

    written = MetadataReporter().write(container, target)

    assert written == target / "metadata.json"
    assert json.loads(written.read_text(encoding="utf-8")) == {"format": "png", "minzoom": "0", "name": "World"}


def test_write_to_file_path(container: Path, tmp_path: Path) -> None:
    written = MetadataReporter().write(container, tmp_path / "nested" / "meta.json")

    assert written.is_file()
    assert json.loads(written.read_text(encoding="utf-8"))["name"] == "World"


def test_report_does_not_modify_container(container: Path) -> None:
    before = container.read_bytes()

    MetadataReporter().report(container, io.StringIO())

    assert container.read_bytes() == before


def test_missing_container(tmp_path: Path) -> None:
    with pytest.raises(ContainerError):
        MetadataReporter().report(tmp_path / "missing.mbtiles", io.StringIO())
