"""Utility functions for the team hierarchy engine."""

from .file_utils import atomic_write, ensure_directory
from .geometry_utils import BoundingBox, merge_bboxes

__all__ = [
    "atomic_write",
    "ensure_directory",
    "BoundingBox",
    "merge_bboxes",
]
