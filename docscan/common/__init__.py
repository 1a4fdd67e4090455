"""
Common types and errors shared across all scanner modules.
"""

from docscan.common.errors import (
    CaptureInProgressError,
    CaptureUnavailableError,
    DegenerateQuadError,
    EmptyInputError,
    FileWriteFailedError,
    ImageCreationFailedError,
    ScannerError,
)
from docscan.common.types import (
    ImageBuffer,
    Point,
    Quad,
    Rectangle,
    quad_from_numpy,
    quad_to_numpy,
)

__all__ = [
    "ImageBuffer",
    "Point",
    "Quad",
    "Rectangle",
    "quad_from_numpy",
    "quad_to_numpy",
    "ScannerError",
    "EmptyInputError",
    "DegenerateQuadError",
    "CaptureInProgressError",
    "CaptureUnavailableError",
    "ImageCreationFailedError",
    "FileWriteFailedError",
]
