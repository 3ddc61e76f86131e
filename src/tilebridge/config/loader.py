"""Configuration management with YAML and JSON support."""

from __future__ import annotations

import json
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tilebridge.core.models import ConversionConfig

_BOOL_FIELDS = {"include_grids", "require_grid_data", "verify_image_format", "optimize", "progress"}


class ConfigLoader:
    """Load conversion configuration files in YAML or JSON format."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Path | str) -> ConversionConfig:
        """Parse a configuration file and return a validated dataclass."""

        config_path = self._resolve_path(Path(path))
        if not config_path.is_file():
            raise ValueError(f"Configuration file not found: {config_path}")
        payload = self._load_payload(config_path)
        return self._build_config(payload)

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle) or {}
        elif suffix == ".json":
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle) or {}
        else:
            raise ValueError(f"Unsupported configuration format: {suffix}")
        if not isinstance(payload, dict):
            raise ValueError("configuration root must be a mapping")
        # allow the options to live under a ``conversion`` section
        section = payload.get("conversion", payload)
        if not isinstance(section, dict):
            raise ValueError("conversion section must be a mapping")
        return section

    def _build_config(self, payload: Dict[str, Any]) -> ConversionConfig:
        known = {item.name for item in fields(ConversionConfig)}
        data = {key.replace("-", "_"): value for key, value in payload.items()}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        for key in _BOOL_FIELDS & set(data):
            if not isinstance(data[key], bool):
                raise ValueError(f"{key} must be a boolean")
        config = ConversionConfig(**data)
        config.validate()
        return config


def load_config(path: Path | str, *, base_dir: Optional[Path] = None) -> ConversionConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)


def apply_overrides(config: ConversionConfig, **overrides: Any) -> ConversionConfig:
    """Return a copy of ``config`` with every non-``None`` override applied."""

    values = {key: value for key, value in overrides.items() if value is not None}
    updated = replace(config, **values)
    updated.validate()
    return updated
