from pathlib import Path
from typing import Callable, Dict

import pytest

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def png_bytes(label: str) -> bytes:
    return PNG_HEADER + label.encode("utf-8")


@pytest.fixture()
def make_tree(tmp_path: Path) -> Callable[[Dict[str, bytes]], Path]:
    """Write ``{relative_path: payload}`` under a fresh directory and return it."""

    def _make(files: Dict[str, bytes], name: str = "tiles") -> Path:
        root = tmp_path / name
        root.mkdir()
        for relative, payload in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        return root

    return _make


@pytest.fixture()
def pyramid(make_tree: Callable[..., Path]) -> Path:
    return make_tree(
        {
            "0/0/0.png": png_bytes("z0"),
            "1/0/0.png": png_bytes("z1-top"),
            "1/0/1.png": png_bytes("z1-bottom"),
        }
    )
