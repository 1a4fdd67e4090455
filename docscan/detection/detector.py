"""
Document boundary detection.

Finds the largest convex quadrilateral in a frame using classic edge and
contour analysis:

1. Grayscale conversion
2. Local contrast enhancement (CLAHE)
3. Gaussian blur
4. Canny edge detection
5. Morphological close to join broken edges
6. External contour extraction
7. Polygon approximation + convexity/area filtering
8. Largest surviving candidate, corners ordered [TL, TR, BR, BL]

When the Canny pass finds nothing, an adaptive-threshold pass is tried on
the same blurred image (helps with low-contrast documents). "No document"
is the common case and returns None rather than raising.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from docscan.common.types import Quad, quad_from_numpy
from docscan.config_loader import DetectionConfig
from docscan.detection.types import DetectionResult
from docscan.geometry.quad_utils import order_points

logger = logging.getLogger(__name__)

_ROTATION_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def prepare_frame(pixels: np.ndarray, rotation: int = 0) -> np.ndarray:
    """
    Rotate a raw frame upright.

    Args:
        pixels: Frame as (H, W) or (H, W, C) uint8 array.
        rotation: Clockwise rotation in degrees (0, 90, 180 or 270).

    Returns:
        The rotated frame (the input array itself when rotation is 0).

    Raises:
        ValueError: For rotations other than multiples of 90 degrees.
    """
    rotation = rotation % 360
    if rotation == 0:
        return pixels

    if rotation not in _ROTATION_CODES:
        raise ValueError(f"Unsupported frame rotation: {rotation}")

    return cv2.rotate(pixels, _ROTATION_CODES[rotation])


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR, BGRA or single-channel image to a 2D grayscale array."""
    if image.ndim == 2:
        return image

    channels = image.shape[2]
    if channels == 1:
        return image[:, :, 0]
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


class DocumentDetector:
    """
    Per-frame document quadrilateral detector.

    Example:
        >>> detector = DocumentDetector()
        >>> frame = cv2.imread("page.jpg")
        >>> quad = detector.detect(frame)
        >>> if quad is not None:
        ...     print([p.to_tuple() for p in quad])
    """

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()

    def detect_result(self, frame: np.ndarray) -> DetectionResult:
        """Run detection and package the quad with the frame dimensions."""
        height, width = frame.shape[:2]
        return DetectionResult(
            quad=self.detect(frame), frame_width=int(width), frame_height=int(height)
        )

    def detect(self, frame: np.ndarray) -> Optional[Quad]:
        """
        Find the best document quadrilateral in a frame.

        Args:
            frame: Image as (H, W) grayscale or (H, W, 3/4) BGR(A) uint8 array.

        Returns:
            Corners ordered [TL, TR, BR, BL] in frame pixels, or None.
        """
        if frame is None or frame.size == 0:
            logger.debug("Empty frame, nothing to detect")
            return None

        cfg = self.config
        frame_area = float(frame.shape[0] * frame.shape[1])

        clahe = cv2.createCLAHE(
            clipLimit=cfg.clahe_clip_limit,
            tileGridSize=(cfg.clahe_tile_grid, cfg.clahe_tile_grid),
        )
        kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (cfg.morph_kernel, cfg.morph_kernel)
        )
        gray = enhanced = blurred = edges = closed = None

        try:
            gray = to_grayscale(frame)
            enhanced = clahe.apply(gray)
            blurred = cv2.GaussianBlur(
                enhanced, (cfg.blur_kernel, cfg.blur_kernel), 0
            )

            edges = cv2.Canny(blurred, cfg.canny_low, cfg.canny_high)
            closed = cv2.morphologyEx(edges, cv2.MORPH_CLOSE, kernel)
            quad = self._find_largest_quad(closed, frame_area)

            if quad is None and cfg.adaptive_fallback:
                logger.debug("Canny pass found nothing, trying adaptive threshold")
                thresh = cv2.adaptiveThreshold(
                    blurred,
                    255,
                    cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                    cv2.THRESH_BINARY,
                    cfg.adaptive_block_size,
                    cfg.adaptive_c,
                )
                closed = cv2.morphologyEx(thresh, cv2.MORPH_CLOSE, kernel)
                quad = self._find_largest_quad(closed, frame_area)

            if quad is None:
                logger.debug("No document quadrilateral found")
            else:
                logger.debug(f"Document detected: {quad}")
            return quad
        finally:
            # Hot per-frame path: drop intermediate buffers on every exit
            clahe.collectGarbage()
            del gray, enhanced, blurred, edges, closed

    def _find_largest_quad(
        self, binary: np.ndarray, frame_area: float
    ) -> Optional[Quad]:
        """Return the largest convex 4-vertex contour within the area bounds."""
        cfg = self.config
        contours, _ = cv2.findContours(
            binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
        )

        min_area = max(frame_area * cfg.min_area_ratio, cfg.min_area_px)
        max_area = frame_area * cfg.max_area_ratio

        best: Optional[np.ndarray] = None
        best_area = 0.0

        for contour in contours:
            perimeter = cv2.arcLength(contour, True)
            approx = cv2.approxPolyDP(
                contour, cfg.approx_epsilon_ratio * perimeter, True
            )

            if len(approx) != 4:
                continue

            area = abs(cv2.contourArea(approx))
            if area < min_area or area > max_area:
                continue

            if not cv2.isContourConvex(approx):
                continue

            if area > best_area:
                best = approx
                best_area = area

        if best is None:
            return None

        logger.debug(
            f"Best candidate area {best_area:.0f} px^2 "
            f"({best_area / frame_area:.1%} of frame) "
            f"out of {len(contours)} contours"
        )
        return order_points(quad_from_numpy(best))


def get_document_bounds(
    image: np.ndarray, config: Optional[DetectionConfig] = None
) -> Optional[Quad]:
    """
    Convenience function for one-shot detection on a still image.

    Example:
        >>> quad = get_document_bounds(cv2.imread("page.jpg"))
    """
    return DocumentDetector(config=config).detect(image)
