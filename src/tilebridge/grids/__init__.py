"""UTFGrid encoding helpers."""

from .codec import decode_grid_file, encode_grid_file, merge_grid_data, split_grid_data

__all__ = ["decode_grid_file", "encode_grid_file", "merge_grid_data", "split_grid_data"]
