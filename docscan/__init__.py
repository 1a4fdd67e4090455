"""
docscan: document detection, stability tracking and perspective rectification

Previews camera frames, finds the document quadrilateral in each one,
tracks how steady the detection is, and on a manual or automatic trigger
captures a full-resolution still and flattens the document.

Pipeline stages:
1. Document detection (edges + contours -> quad)
2. Stability tracking (stable frame count -> auto-capture)
3. Capture orchestration (single capture in flight)
4. Perspective rectification (quad -> flat rectangle)
"""

from docscan.capture.orchestrator import CaptureOrchestrator
from docscan.capture.types import CaptureResult, CaptureState
from docscan.common.errors import (
    CaptureInProgressError,
    CaptureUnavailableError,
    DegenerateQuadError,
    EmptyInputError,
    FileWriteFailedError,
    ImageCreationFailedError,
    ScannerError,
)
from docscan.common.types import Point, Quad, Rectangle
from docscan.config_loader import (
    ScannerConfig,
    StabilityPolicy,
    get_default_config,
    load_config,
)
from docscan.detection.detector import DocumentDetector, get_document_bounds
from docscan.detection.types import DetectionEvent, DetectionResult
from docscan.geometry.quad_utils import order_points
from docscan.rectification.rectifier import PerspectiveRectifier
from docscan.scanner import ScannerSession, detect_and_rectify
from docscan.stability.tracker import StabilityTracker

__version__ = "0.1.0"

__all__ = [
    "ScannerSession",
    "detect_and_rectify",
    "DocumentDetector",
    "get_document_bounds",
    "StabilityTracker",
    "PerspectiveRectifier",
    "CaptureOrchestrator",
    "order_points",
    "load_config",
    "get_default_config",
    "ScannerConfig",
    "StabilityPolicy",
    "Point",
    "Quad",
    "Rectangle",
    "DetectionEvent",
    "DetectionResult",
    "CaptureResult",
    "CaptureState",
    "ScannerError",
    "EmptyInputError",
    "DegenerateQuadError",
    "CaptureInProgressError",
    "CaptureUnavailableError",
    "ImageCreationFailedError",
    "FileWriteFailedError",
]
