"""
Data types for the Capture module.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from docscan.common.types import Quad
from docscan.geometry.coordinates import quad_to_rectangle


class CaptureState(Enum):
    """Capture state machine: IDLE -> CAPTURING -> IDLE."""

    IDLE = "idle"
    CAPTURING = "capturing"


@dataclass
class CaptureResult:
    """
    Output of one completed capture.

    Attributes:
        original: File path or base64 JPEG of the full-resolution still.
        cropped: File path or base64 JPEG of the flattened document. Equal
            to ``original`` when no document could be cropped.
        width: Width of the full-resolution still in pixels.
        height: Height of the full-resolution still in pixels.
        quad: Capture-resolution corners used for cropping, None on fallback.
    """

    original: str
    cropped: str
    width: int
    height: int
    quad: Optional[Quad] = None

    @property
    def is_cropped(self) -> bool:
        """Check if the document was perspective-corrected."""
        return self.quad is not None

    def to_payload(self) -> dict:
        """Serialize to the capture sink map consumed by platform glue."""
        rect = quad_to_rectangle(self.quad)
        return {
            "initialImage": self.original,
            "croppedImage": self.cropped,
            "width": self.width,
            "height": self.height,
            "rectangleCoordinates": rect.to_dict() if rect else None,
        }
