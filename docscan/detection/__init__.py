"""
Document Detection

Finds the document quadrilateral in camera frames via edge and contour
analysis.
"""

from docscan.detection.detector import (
    DocumentDetector,
    get_document_bounds,
    prepare_frame,
    to_grayscale,
)
from docscan.detection.types import DetectionEvent, DetectionResult

__all__ = [
    "DocumentDetector",
    "get_document_bounds",
    "prepare_frame",
    "to_grayscale",
    "DetectionEvent",
    "DetectionResult",
]
