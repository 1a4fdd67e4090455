"""
Coordinate conversions between reference frames.

Detection runs on preview-sized frames while captures come back at full
sensor resolution, so quads are rescaled before rectification.
"""

import logging
from typing import Optional, Sequence

from docscan.common.types import Point, Quad, Rectangle

logger = logging.getLogger(__name__)


def quad_to_rectangle(quad: Optional[Sequence[Point]]) -> Optional[Rectangle]:
    """Convert an ordered quad to named corners, None unless it has 4 points."""
    if not quad or len(quad) != 4:
        return None

    return Rectangle(
        top_left=quad[0],
        top_right=quad[1],
        bottom_right=quad[2],
        bottom_left=quad[3],
    )


def rectangle_to_quad(rect: Rectangle) -> Quad:
    """Convert named corners back to an ordered quad."""
    return [rect.top_left, rect.top_right, rect.bottom_right, rect.bottom_left]


def scale_quad(quad: Sequence[Point], scale_x: float, scale_y: float) -> Quad:
    """Multiply every x by ``scale_x`` and every y by ``scale_y``."""
    return [Point(x=p.x * scale_x, y=p.y * scale_y) for p in quad]


def scale_coordinates(
    points: Sequence[Point],
    from_width: float,
    from_height: float,
    to_width: float,
    to_height: float,
) -> Quad:
    """
    Rescale points from one frame size to another.

    Example:
        >>> pts = [Point(x=320, y=240)]
        >>> scale_coordinates(pts, 640, 480, 1280, 960)[0].to_tuple()
        (640.0, 480.0)
    """
    if from_width <= 0 or from_height <= 0:
        raise ValueError(
            f"Source frame size must be positive, got {from_width}x{from_height}"
        )

    scale_x = to_width / from_width
    scale_y = to_height / from_height
    logger.debug(f"Scaling coordinates by ({scale_x:.4f}, {scale_y:.4f})")

    return scale_quad(points, scale_x, scale_y)


def scale_rectangle(
    rect: Rectangle,
    from_width: float,
    from_height: float,
    to_width: float,
    to_height: float,
) -> Rectangle:
    """Rescale all four named corners from one frame size to another."""
    scaled = scale_coordinates(
        rectangle_to_quad(rect), from_width, from_height, to_width, to_height
    )
    return quad_to_rectangle(scaled)


def apply_corner_calibration(quad: Sequence[Point], left_offset_x: float) -> Quad:
    """
    Shift the left-hand corners (top-left, bottom-left) horizontally.

    Empirical per-camera correction for capture geometry; an offset of 0
    returns the quad unchanged.
    """
    if left_offset_x == 0:
        return list(quad)

    tl, tr, br, bl = quad
    return [
        Point(x=tl.x + left_offset_x, y=tl.y),
        tr,
        br,
        Point(x=bl.x + left_offset_x, y=bl.y),
    ]
