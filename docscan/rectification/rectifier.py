"""
Perspective Rectification

Warps an ordered document quadrilateral to an axis-aligned rectangle
(flattened, top-down view of the page).
"""

import logging
import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from docscan.common.errors import DegenerateQuadError
from docscan.common.types import Point, quad_to_numpy
from docscan.config_loader import RectificationConfig
from docscan.geometry.quad_utils import is_valid_quad, quad_area

logger = logging.getLogger(__name__)

INTERPOLATION_FLAGS = {
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "nearest": cv2.INTER_NEAREST,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}

# |sin| of the corner angle below which three corners count as collinear
_COLLINEAR_SINE = 1e-6


def compute_output_size(quad: Sequence[Point]) -> Tuple[int, int]:
    """
    Derive the rectified canvas size from the quad's own edge lengths.

    Takes the longer of each pair of opposite edges, so the document keeps
    its natural aspect ratio and no content is squeezed.

    Args:
        quad: Corners ordered [TL, TR, BR, BL].

    Returns:
        (width, height), each at least 1 pixel.

    Example:
        >>> quad = [Point(x=100, y=100), Point(x=540, y=100),
        ...         Point(x=540, y=380), Point(x=100, y=380)]
        >>> compute_output_size(quad)
        (440, 280)
    """
    tl, tr, br, bl = quad

    width_bottom = math.hypot(br.x - bl.x, br.y - bl.y)
    width_top = math.hypot(tr.x - tl.x, tr.y - tl.y)
    height_right = math.hypot(tr.x - br.x, tr.y - br.y)
    height_left = math.hypot(tl.x - bl.x, tl.y - bl.y)

    max_width = max(int(max(width_bottom, width_top)), 1)
    max_height = max(int(max(height_right, height_left)), 1)

    logger.debug(f"Calculated output dimensions: {max_width}x{max_height}")
    return max_width, max_height


def compute_homography(quad: Sequence[Point], width: int, height: int) -> np.ndarray:
    """
    Exact 3x3 homography mapping the quad onto a ``width`` x ``height`` canvas.

    Destination corners follow the same TL -> TR -> BR -> BL winding as the
    source; a mismatch would mirror or rotate the output.
    """
    src = quad_to_numpy(quad, dtype=np.float32)
    dst = np.array(
        [
            [0, 0],  # Top-Left
            [width - 1, 0],  # Top-Right
            [width - 1, height - 1],  # Bottom-Right
            [0, height - 1],  # Bottom-Left
        ],
        dtype=np.float32,
    )
    return cv2.getPerspectiveTransform(src, dst)


def check_quad(quad: Optional[Sequence[Point]], min_area: float = 1.0) -> None:
    """
    Reject quads that cannot define a meaningful perspective warp.

    Raises:
        DegenerateQuadError: If the quad is invalid, has near-zero area, has
            three collinear consecutive corners, or is not convex in its
            given winding.
    """
    if not is_valid_quad(quad):
        raise DegenerateQuadError("Quad must contain exactly 4 finite points")

    area = quad_area(quad)
    if area < min_area:
        raise DegenerateQuadError(f"Quad area {area:.2f} px^2 is below {min_area}")

    cross_products = []
    for i in range(4):
        p1, p2, p3 = quad[i], quad[(i + 1) % 4], quad[(i + 2) % 4]
        v1 = (p2.x - p1.x, p2.y - p1.y)
        v2 = (p3.x - p2.x, p3.y - p2.y)
        cross = v1[0] * v2[1] - v1[1] * v2[0]

        norm = math.hypot(*v1) * math.hypot(*v2)
        if norm == 0 or abs(cross) / norm < _COLLINEAR_SINE:
            raise DegenerateQuadError(
                f"Corners {i}, {(i + 1) % 4}, {(i + 2) % 4} are coincident or collinear"
            )
        cross_products.append(cross)

    # Convex iff every turn goes the same way
    if not (all(c > 0 for c in cross_products) or all(c < 0 for c in cross_products)):
        raise DegenerateQuadError(
            f"Quad is self-intersecting or concave. Cross products: {cross_products}"
        )


class PerspectiveRectifier:
    """
    Flattens a document quad into an axis-aligned image.

    Example:
        >>> rectifier = PerspectiveRectifier()
        >>> flat = rectifier.rectify(image, quad)
        >>> flat.shape[:2]
        (280, 440)
    """

    def __init__(self, config: Optional[RectificationConfig] = None):
        self.config = config or RectificationConfig()
        self.interpolation = INTERPOLATION_FLAGS[self.config.interpolation]

    def rectify(
        self,
        image: np.ndarray,
        quad: Sequence[Point],
        output_size: Optional[Tuple[int, int]] = None,
    ) -> np.ndarray:
        """
        Warp the region inside ``quad`` to a rectangle.

        Args:
            image: Source image (H, W) or (H, W, C), in the quad's coordinates.
            quad: Corners ordered [TL, TR, BR, BL] in image pixels.
            output_size: Fixed (width, height). Falls back to the configured
                size, then to the size derived from the quad's edges.

        Returns:
            Rectified image of shape (height, width[, C]).

        Raises:
            ValueError: If the image is None or empty.
            DegenerateQuadError: If the quad cannot define a warp.
        """
        if image is None or image.size == 0:
            raise ValueError("Invalid input image: image is None or empty")

        check_quad(quad, self.config.min_quad_area)

        size = output_size or self.config.output_size
        if size is None:
            width, height = compute_output_size(quad)
        else:
            width, height = int(size[0]), int(size[1])

        matrix = compute_homography(quad, width, height)
        rectified = cv2.warpPerspective(
            image, matrix, (width, height), flags=self.interpolation
        )

        logger.info(f"Rectified document quad to {width}x{height} image")
        return rectified
