"""File tree discovery."""

from .builder import build_tree, single_file_tree

__all__ = ["build_tree", "single_file_tree"]
