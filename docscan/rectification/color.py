"""
Colour adjustment of flattened documents.

Saturation is scaled in HSV space, then brightness and contrast are applied
as a linear map ``out = contrast * in + brightness * 255`` with saturation
to the 8-bit range.
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def is_neutral(brightness: float = 0.0, contrast: float = 1.0, saturation: float = 1.0) -> bool:
    """Check if the adjustment would leave the image unchanged."""
    return brightness == 0.0 and contrast == 1.0 and saturation == 1.0


def apply_color_controls(
    image: np.ndarray,
    brightness: float = 0.0,
    contrast: float = 1.0,
    saturation: float = 1.0,
) -> np.ndarray:
    """
    Adjust brightness, contrast and saturation of a BGR(A) or grayscale image.

    Args:
        image: uint8 image (H, W) or (H, W, 3/4).
        brightness: Offset as a fraction of 255 (0 = unchanged).
        contrast: Gain (1 = unchanged).
        saturation: HSV saturation gain (1 = unchanged, 0 = grayscale).
            Ignored for single-channel images.

    Returns:
        Adjusted copy, or the input itself when every control is neutral.

    Example:
        >>> flat = apply_color_controls(flat, brightness=0.1, contrast=1.2)
    """
    if is_neutral(brightness, contrast, saturation):
        return image

    adjusted = image
    if saturation != 1.0 and image.ndim == 3 and image.shape[2] in (3, 4):
        bgr = np.ascontiguousarray(image[:, :, :3])
        hsv = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)
        h, s, v = cv2.split(hsv)
        s = cv2.addWeighted(s, saturation, s, 0.0, 0.0)
        bgr = cv2.cvtColor(cv2.merge([h, s, v]), cv2.COLOR_HSV2BGR)

        if image.shape[2] == 4:
            adjusted = np.dstack([bgr, image[:, :, 3]])
        else:
            adjusted = bgr

    if brightness != 0.0 or contrast != 1.0:
        adjusted = cv2.addWeighted(adjusted, contrast, adjusted, 0.0, brightness * 255.0)

    logger.debug(
        f"Applied colour controls (brightness={brightness}, "
        f"contrast={contrast}, saturation={saturation})"
    )
    return adjusted
