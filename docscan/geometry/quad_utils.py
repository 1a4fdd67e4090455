"""
Quadrilateral geometry utilities.

Pure functions for validating, ordering, measuring and blending the
4-corner polygons produced by the document detector. Malformed single
points or quads never raise: they yield sentinel values (``False``, ``0``,
``inf``). Empty collections passed to the averaging helpers are programmer
errors and raise ``EmptyInputError``.
"""

import logging
import math
from typing import List, Optional, Sequence

from docscan.common.errors import EmptyInputError
from docscan.common.types import Point, Quad

logger = logging.getLogger(__name__)

# Coordinates beyond this magnitude indicate a corrupted detection
COORDINATE_BOUND = 1_000_000.0

# Tolerance on x + y when picking the top-left corner
POINT_EPSILON = 1e-3


def is_valid_point(point: Optional[Point]) -> bool:
    """
    Check that a point exists and holds finite, sane coordinates.

    Example:
        >>> is_valid_point(Point(x=10, y=20))
        True
        >>> is_valid_point(Point(x=float("nan"), y=0))
        False
    """
    if not isinstance(point, Point):
        return False

    if not (math.isfinite(point.x) and math.isfinite(point.y)):
        return False

    return abs(point.x) <= COORDINATE_BOUND and abs(point.y) <= COORDINATE_BOUND


def is_valid_quad(quad: Optional[Sequence[Point]]) -> bool:
    """Check that a quad holds exactly 4 valid points."""
    if quad is None or isinstance(quad, (str, bytes)):
        return False
    try:
        if len(quad) != 4:
            return False
    except TypeError:
        return False
    return all(is_valid_point(p) for p in quad)


def order_points(points: Sequence[Point]) -> Quad:
    """
    Order 4 points as [Top-Left, Top-Right, Bottom-Right, Bottom-Left].

    Points are stably sorted by their angle around the centroid, which gives
    a consistent clockwise winding in image coordinates (y grows downwards).
    The sequence is then rotated so the top-left-most point (minimal x + y)
    comes first. A later point only replaces the current top-left candidate
    when its score is smaller by more than ``POINT_EPSILON``, so ties keep
    the earlier point.

    Corner identity must stay consistent across frames: both the stability
    metric and the rectifier pair corners by index.

    Example:
        >>> pts = [Point(x=540, y=380), Point(x=100, y=100),
        ...        Point(x=100, y=380), Point(x=540, y=100)]
        >>> [p.to_tuple() for p in order_points(pts)]
        [(100.0, 100.0), (540.0, 100.0), (540.0, 380.0), (100.0, 380.0)]
    """
    points = list(points)
    if not points:
        return []

    count = len(points)
    cx = sum(p.x for p in points) / count
    cy = sum(p.y for p in points) / count

    ordered = sorted(points, key=lambda p: math.atan2(p.y - cy, p.x - cx))

    top_left_index = 0
    for index, point in enumerate(ordered):
        selected = ordered[top_left_index]
        if point.x + point.y < selected.x + selected.y - POINT_EPSILON:
            top_left_index = index

    return ordered[top_left_index:] + ordered[:top_left_index]


def quad_distance(a: Optional[Sequence[Point]], b: Optional[Sequence[Point]]) -> float:
    """
    Mean Euclidean distance between corresponding corners of two quads.

    Returns ``inf`` if either quad is invalid. Used as the frame-to-frame
    motion metric by the stability tracker.
    """
    if not is_valid_quad(a) or not is_valid_quad(b):
        return math.inf

    total = sum(math.hypot(pa.x - pb.x, pa.y - pb.y) for pa, pb in zip(a, b))
    return total / 4


def quad_area(quad: Optional[Sequence[Point]]) -> float:
    """Absolute shoelace area of a quad, 0 for invalid input."""
    if not is_valid_quad(quad):
        return 0.0

    area = 0.0
    for i in range(4):
        current = quad[i]
        nxt = quad[(i + 1) % 4]
        area += current.x * nxt.y - nxt.x * current.y

    return abs(area) / 2


def quad_center(quad: Optional[Sequence[Point]]) -> Point:
    """Arithmetic mean of the corners (origin for invalid input)."""
    if not is_valid_quad(quad):
        return Point(x=0.0, y=0.0)

    return Point(x=sum(p.x for p in quad) / 4, y=sum(p.y for p in quad) / 4)


def quad_edge_lengths(quad: Optional[Sequence[Point]]) -> List[float]:
    """
    Lengths of the 4 edges in winding order.

    For a canonically ordered quad this is [top, right, bottom, left].
    Returns four zeros for invalid input.
    """
    if not is_valid_quad(quad):
        return [0.0, 0.0, 0.0, 0.0]

    lengths = []
    for i in range(4):
        current = quad[i]
        nxt = quad[(i + 1) % 4]
        lengths.append(math.hypot(nxt.x - current.x, nxt.y - current.y))

    return lengths


def average_quad(quads: Sequence[Sequence[Point]]) -> Quad:
    """
    Elementwise mean of a non-empty list of quads.

    Raises:
        EmptyInputError: If ``quads`` is empty.
    """
    if not quads:
        raise EmptyInputError("Cannot average empty quad list")

    count = len(quads)
    return [
        Point(
            x=sum(q[i].x for q in quads) / count,
            y=sum(q[i].y for q in quads) / count,
        )
        for i in range(len(quads[0]))
    ]


def weighted_average_quad(quads: Sequence[Sequence[Point]]) -> Quad:
    """
    Mean of a non-empty list of quads with linearly increasing weights.

    The i-th quad (0-based) gets weight ``i + 1``, so the most recent
    detections dominate.

    Raises:
        EmptyInputError: If ``quads`` is empty.
    """
    if not quads:
        raise EmptyInputError("Cannot average empty quad list")

    weights = range(1, len(quads) + 1)
    total_weight = sum(weights)

    return [
        Point(
            x=sum(q[i].x * w for q, w in zip(quads, weights)) / total_weight,
            y=sum(q[i].y * w for q, w in zip(quads, weights)) / total_weight,
        )
        for i in range(len(quads[0]))
    ]


def blend_quads(base: Sequence[Point], target: Sequence[Point], alpha: float) -> Quad:
    """
    Linearly interpolate each corner from ``base`` towards ``target``.

    ``alpha <= 0`` returns ``base`` and ``alpha >= 1`` returns ``target``.
    """
    if alpha <= 0:
        return list(base)

    if alpha >= 1:
        return list(target)

    return [
        Point(x=b.x * (1 - alpha) + t.x * alpha, y=b.y * (1 - alpha) + t.y * alpha)
        for b, t in zip(base, target)
    ]


def sanitize_quad(quad: Sequence[Point]) -> Quad:
    """
    Return a detached copy of a valid quad.

    Raises:
        ValueError: If the quad is invalid.
    """
    if not is_valid_quad(quad):
        raise ValueError("Cannot sanitize invalid quad")

    return [Point(x=p.x, y=p.y) for p in quad]
