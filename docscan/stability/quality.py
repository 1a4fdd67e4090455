"""
Quad quality classification.

Classifies a detected quad by how squarely and how closely the document is
framed. Used by the ``decrement`` stability policy, which softens the
counter on shaky or distant frames instead of discarding progress.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from docscan.common.types import Point
from docscan.config_loader import QualityGateConfig
from docscan.geometry.quad_utils import is_valid_quad

logger = logging.getLogger(__name__)


class QuadQuality(Enum):
    """Framing quality of a detected quad."""

    GOOD = "good"
    BAD_ANGLE = "bad_angle"  # Edges too skewed relative to the frame axes
    TOO_FAR = "too_far"  # Document does not fill the frame


def evaluate_quad_quality(
    quad: Sequence[Point],
    frame_width: int,
    frame_height: int,
    gate: Optional[QualityGateConfig] = None,
) -> QuadQuality:
    """
    Classify an ordered quad against the frame it was detected in.

    BAD_ANGLE: the top or bottom edge rises/falls, or the left or right edge
    leans, by more than ``max(angle_threshold_min, min_dim * angle_threshold_ratio)``.

    TOO_FAR: a top corner sits lower than ``margin`` from the top edge, or a
    bottom corner higher than ``margin`` from the bottom edge, where
    ``margin = max(margin_min, min_dim * margin_ratio)``.

    Args:
        quad: Corners ordered [TL, TR, BR, BL] in frame coordinates.
        frame_width: Frame width in pixels.
        frame_height: Frame height in pixels.
        gate: Thresholds; defaults are used when omitted.

    Returns:
        QuadQuality classification. Invalid quads and empty frames are TOO_FAR.
    """
    gate = gate or QualityGateConfig()

    if frame_width <= 0 or frame_height <= 0 or not is_valid_quad(quad):
        return QuadQuality.TOO_FAR

    tl, tr, br, bl = quad
    min_dim = float(min(frame_width, frame_height))

    angle_threshold = max(gate.angle_threshold_min, min_dim * gate.angle_threshold_ratio)
    skews = (
        abs(tr.y - tl.y),
        abs(bl.y - br.y),
        abs(tl.x - bl.x),
        abs(tr.x - br.x),
    )
    if any(skew > angle_threshold for skew in skews):
        logger.debug(f"Bad angle: skews={skews}, threshold={angle_threshold:.1f}")
        return QuadQuality.BAD_ANGLE

    margin = max(gate.margin_min, min_dim * gate.margin_ratio)
    if (
        tl.y > margin
        or tr.y > margin
        or bl.y < frame_height - margin
        or br.y < frame_height - margin
    ):
        logger.debug(f"Too far: margin={margin:.1f}")
        return QuadQuality.TOO_FAR

    return QuadQuality.GOOD
