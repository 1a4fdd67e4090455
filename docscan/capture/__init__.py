"""
Capture orchestration and background frame analysis.
"""

from docscan.capture.frame_worker import FrameAnalysisWorker
from docscan.capture.orchestrator import CaptureOrchestrator, StillSource
from docscan.capture.types import CaptureResult, CaptureState

__all__ = [
    "CaptureOrchestrator",
    "CaptureResult",
    "CaptureState",
    "FrameAnalysisWorker",
    "StillSource",
]
