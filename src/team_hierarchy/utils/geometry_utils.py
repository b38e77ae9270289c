"""
Geometry utilities for the Team Hierarchy Engine.

This module provides the rectangle type used to describe laid-out hierarchy
diagrams and the helper that merges node boxes into the bounding box of a
whole layout.

Coordinates follow the diagram convention: (x, y) is the top-left corner,
x grows to the right and y grows downwards.

Typical usage:
    from team_hierarchy.utils.geometry_utils import BoundingBox, merge_bboxes

    a = BoundingBox(x=0, y=0, width=180, height=60)
    b = BoundingBox(x=200, y=120, width=180, height=60)
    merge_bboxes([a, b])  # BoundingBox(x=0, y=0, width=380, height=180)
"""

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned rectangle in diagram coordinates.

    Attributes:
        x: Left coordinate
        y: Top coordinate
        width: Width (must be >= 0)
        height: Height (must be >= 0)

    Raises:
        ValueError: If width or height is negative.

    Example:
        >>> bbox = BoundingBox(x=10, y=20, width=100, height=50)
        >>> bbox.to_corners()
        (10, 20, 110, 70)
    """

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        """Validate bounding box dimensions."""
        if self.width < 0:
            raise ValueError(f"Width must be non-negative, got {self.width}")
        if self.height < 0:
            raise ValueError(f"Height must be non-negative, got {self.height}")

    def to_corners(self) -> Tuple[float, float, float, float]:
        """
        Convert to (x1, y1, x2, y2) corner coordinates.

        Returns:
            Tuple of (x1, y1, x2, y2) representing top-left and bottom-right corners
        """
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def merge_bboxes(bboxes: List[BoundingBox]) -> BoundingBox:
    """
    Merge multiple bounding boxes into single bounding box.

    Args:
        bboxes: List of bounding boxes to merge

    Returns:
        Merged bounding box that contains all input boxes. Returns a zero-area
        bounding box at origin if input list is empty.

    Example:
        >>> boxes = [BoundingBox(0, 0, 10, 10), BoundingBox(20, 20, 10, 10)]
        >>> merge_bboxes(boxes)
        BoundingBox(x=0, y=0, width=30, height=30)
    """
    if not bboxes:
        return BoundingBox(x=0, y=0, width=0, height=0)

    corners = [bbox.to_corners() for bbox in bboxes]

    x1_min = min(c[0] for c in corners)
    y1_min = min(c[1] for c in corners)
    x2_max = max(c[2] for c in corners)
    y2_max = max(c[3] for c in corners)

    return BoundingBox(
        x=x1_min, y=y1_min, width=x2_max - x1_min, height=y2_max - y1_min
    )
