"""Encode and decode UTFGrid payloads, optionally wrapped as JSONP."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from tilebridge.core.errors import GridFormatError
from tilebridge.core.models import callback_enabled, valid_callback

DATA_FIELD = "data"
RESERVED_FIELDS = ("grid", "keys")

_JSONP = re.compile(r"^\s*([\w\s$=+,\-./]+?)\s*\((.*)\)\s*;?\s*$", re.DOTALL)


def decode_grid_file(payload: bytes, expected_callback: Optional[str]) -> Dict[str, Any]:
    """Return the grid document contained in a ``.grid.json`` file.

    With an active callback a ``callback(...);`` wrapper is stripped and its
    name must equal ``expected_callback``; bare JSON is accepted as well. With
    the callback disabled the payload must be plain JSON.
    """

    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise GridFormatError(f"Grid payload is not valid UTF-8: {exc}") from exc

    if callback_enabled(expected_callback):
        match = _JSONP.match(text)
        if match is not None:
            found = match.group(1)
            if found != expected_callback.strip():
                raise GridFormatError(
                    f"Grid callback {found!r} does not match the expected callback {expected_callback!r}"
                )
            text = match.group(2)

    try:
        document = json.loads(text)
    except ValueError as exc:
        raise GridFormatError(f"Grid payload is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise GridFormatError("Grid JSON is not an object")
    return document


def encode_grid_file(grid: Mapping[str, Any], callback: Optional[str]) -> bytes:
    """Serialize a grid document, wrapping it in ``callback(...);`` when enabled."""

    body = json.dumps(grid, separators=(",", ":"), ensure_ascii=False)
    if not callback_enabled(callback):
        return body.encode("utf-8")
    if not valid_callback(callback):
        raise GridFormatError(f"Invalid JSONP callback name: {callback!r}")
    return f"{callback}({body});".encode("utf-8")


def merge_grid_data(grid: Mapping[str, Any], overlay: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return a copy of ``grid`` with ``overlay`` merged under ``data``.

    Entries already present in the grid's ``data`` win over the overlay.
    """

    document = dict(grid)
    if overlay is None:
        return document
    if not isinstance(overlay, Mapping):
        raise GridFormatError("Grid data overlay must be a JSON object")
    collisions = sorted(key for key in overlay if key in RESERVED_FIELDS)
    if collisions:
        raise GridFormatError(f"Grid data overlay collides with reserved fields: {', '.join(collisions)}")

    existing = document.get(DATA_FIELD)
    if existing is None:
        existing = {}
    if not isinstance(existing, Mapping):
        raise GridFormatError("Grid 'data' field must be a JSON object")
    merged = dict(overlay)
    merged.update(existing)
    document[DATA_FIELD] = merged
    return document


def split_grid_data(grid: Mapping[str, Any]) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """Separate the ``data`` overlay from the rest of a grid document."""

    document = dict(grid)
    data = document.pop(DATA_FIELD, None)
    if data is not None and not isinstance(data, Mapping):
        raise GridFormatError("Grid 'data' field must be a JSON object")
    return document, (dict(data) if data is not None else None)
