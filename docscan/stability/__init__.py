"""
Stability tracking: frame-to-frame detection consistency for auto-capture.
"""

from docscan.stability.quality import QuadQuality, evaluate_quad_quality
from docscan.stability.tracker import (
    STABILITY_DISTANCE,
    StabilityState,
    StabilityTracker,
)

__all__ = [
    "STABILITY_DISTANCE",
    "StabilityState",
    "StabilityTracker",
    "QuadQuality",
    "evaluate_quad_quality",
]
