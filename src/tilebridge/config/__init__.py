"""Configuration loading utilities for tilebridge."""

from .loader import ConfigLoader, apply_overrides, load_config

__all__ = ["ConfigLoader", "apply_overrides", "load_config"]
