"""
Data types for the Detection module.
"""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docscan.common.types import Point, Quad, Rectangle
from docscan.geometry.coordinates import quad_to_rectangle


@dataclass(frozen=True)
class DetectionResult:
    """
    Output of one detector pass.

    Attributes:
        quad: Ordered document corners [TL, TR, BR, BL], or None.
        frame_width: Width of the analysed frame in pixels.
        frame_height: Height of the analysed frame in pixels.
    """

    quad: Optional[Quad]
    frame_width: int
    frame_height: int

    @property
    def found(self) -> bool:
        """Check if a document was detected."""
        return self.quad is not None


class DetectionEvent(BaseModel):
    """
    Per-frame payload for the detection sink (UI overlay).

    Validated at construction: the count cannot be negative, frame sizes
    must be positive and a present quad must have exactly 4 corners.
    """

    model_config = ConfigDict(frozen=True)

    quad: Optional[List[Point]] = None
    stable_count: int = Field(..., ge=0)
    frame_width: int = Field(..., gt=0)
    frame_height: int = Field(..., gt=0)

    @field_validator("quad")
    @classmethod
    def validate_quad(cls, v):
        if v is not None and len(v) != 4:
            raise ValueError(f"Quad must have exactly 4 points, got {len(v)}")
        return v

    @property
    def rectangle(self) -> Optional[Rectangle]:
        """Named-corner view of the quad."""
        return quad_to_rectangle(self.quad)

    def to_payload(self) -> dict:
        """Serialize to the event map consumed by platform glue."""
        rect = self.rectangle
        return {
            "rectangleCoordinates": rect.to_dict() if rect else None,
            "stableCounter": self.stable_count,
            "frameWidth": self.frame_width,
            "frameHeight": self.frame_height,
        }
