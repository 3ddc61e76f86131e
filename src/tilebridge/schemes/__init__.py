"""Directory scheme translation for tile pyramids."""

from .translator import SchemeTranslator, flip_row, from_path, path_depth, split_leaf, to_path

__all__ = ["SchemeTranslator", "flip_row", "from_path", "path_depth", "split_leaf", "to_path"]
