import json

import pytest

from tilebridge.core.errors import GridFormatError
from tilebridge.grids.codec import decode_grid_file, encode_grid_file, merge_grid_data, split_grid_data

GRID = {"grid": ["  !!", " !!!"], "keys": ["", "1"], "data": {"1": {"NAME": "Fiji"}}}


def test_decode_strips_matching_callback() -> None:
    payload = b'grid({"grid":["  ","!!"],"keys":["","1"]});'

    assert decode_grid_file(payload, "grid") == {"grid": ["  ", "!!"], "keys": ["", "1"]}


def test_decode_rejects_mismatched_callback() -> None:
    payload = b'grid({"grid":["  ","!!"],"keys":["","1"]});'

    with pytest.raises(GridFormatError):
        decode_grid_file(payload, "othercb")


@pytest.mark.parametrize("callback", ["cb", "grid", "window.utf.grid", "my-cb", "my cb", "a=b+c/d", ""])
def test_encode_decode_round_trip(callback: str) -> None:
    assert decode_grid_file(encode_grid_file(GRID, callback), callback) == GRID


def test_encode_without_callback_emits_plain_json() -> None:
    for callback in ("", "false", "null", None):
        assert json.loads(encode_grid_file(GRID, callback)) == GRID


def test_encode_wraps_with_callback() -> None:
    payload = encode_grid_file({"grid": []}, "cb").decode("utf-8")

    assert payload == 'cb({"grid":[]});'


def test_encode_rejects_invalid_callback() -> None:
    with pytest.raises(GridFormatError):
        encode_grid_file(GRID, "bad(callback);")


def test_decode_accepts_bare_json_when_callback_expected() -> None:
    assert decode_grid_file(json.dumps(GRID).encode("utf-8"), "grid") == GRID


def test_decode_with_disabled_callback_requires_plain_json() -> None:
    with pytest.raises(GridFormatError):
        decode_grid_file(b'grid({"grid":[]});', "")


@pytest.mark.parametrize("payload", [b"grid({not json});", b"[1, 2, 3]", b"\xff\xfe\x00"])
def test_decode_rejects_invalid_payloads(payload: bytes) -> None:
    with pytest.raises(GridFormatError):
        decode_grid_file(payload, "grid")


def test_merge_adds_overlay_under_data() -> None:
    merged = merge_grid_data({"grid": [], "keys": ["1"]}, {"1": {"NAME": "Fiji"}})

    assert merged == {"grid": [], "keys": ["1"], "data": {"1": {"NAME": "Fiji"}}}


def test_merge_keeps_existing_data_entries() -> None:
    merged = merge_grid_data({"grid": [], "data": {"1": "kept"}}, {"1": "overlay", "2": "added"})

    assert merged["data"] == {"1": "kept", "2": "added"}


def test_merge_without_overlay_copies_grid() -> None:
    grid = {"grid": [], "keys": []}
    merged = merge_grid_data(grid, None)

    assert merged == grid
    assert merged is not grid


@pytest.mark.parametrize("reserved", ["grid", "keys"])
def test_merge_rejects_reserved_field_collision(reserved: str) -> None:
    with pytest.raises(GridFormatError):
        merge_grid_data({"grid": [], "keys": []}, {reserved: []})


def test_merge_rejects_non_mapping_data() -> None:
    with pytest.raises(GridFormatError):
        merge_grid_data({"grid": [], "data": [1]}, {"1": 1})


def test_split_grid_data() -> None:
    grid, data = split_grid_data(GRID)

    assert "data" not in grid
    assert data == {"1": {"NAME": "Fiji"}}
    assert split_grid_data({"grid": []}) == ({"grid": []}, None)
