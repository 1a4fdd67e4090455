"""
Perspective rectification and image output.
"""

from docscan.rectification.color import apply_color_controls
from docscan.rectification.encoding import ImageEncoder
from docscan.rectification.rectifier import (
    INTERPOLATION_FLAGS,
    PerspectiveRectifier,
    check_quad,
    compute_homography,
    compute_output_size,
)

__all__ = [
    "PerspectiveRectifier",
    "compute_output_size",
    "compute_homography",
    "check_quad",
    "INTERPOLATION_FLAGS",
    "ImageEncoder",
    "apply_color_controls",
]
