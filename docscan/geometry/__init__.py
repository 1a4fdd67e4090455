"""
Geometry utilities: quad validation, ordering, metrics and rescaling.
"""

from docscan.geometry.coordinates import (
    apply_corner_calibration,
    quad_to_rectangle,
    rectangle_to_quad,
    scale_coordinates,
    scale_quad,
    scale_rectangle,
)
from docscan.geometry.quad_utils import (
    average_quad,
    blend_quads,
    is_valid_point,
    is_valid_quad,
    order_points,
    quad_area,
    quad_center,
    quad_distance,
    quad_edge_lengths,
    sanitize_quad,
    weighted_average_quad,
)

__all__ = [
    "is_valid_point",
    "is_valid_quad",
    "order_points",
    "quad_distance",
    "quad_area",
    "quad_center",
    "quad_edge_lengths",
    "average_quad",
    "weighted_average_quad",
    "blend_quads",
    "sanitize_quad",
    "scale_coordinates",
    "scale_rectangle",
    "scale_quad",
    "quad_to_rectangle",
    "rectangle_to_quad",
    "apply_corner_calibration",
]
