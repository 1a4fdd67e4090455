"""
Common type definitions for the document scanner.

This module provides Pydantic-based value types shared by every stage of the
scanning core: points, quadrilaterals, named-corner rectangles and image
buffers.

These types provide:
- Type validation and conversion
- Consistent interfaces across modules
- Integration with numpy arrays and OpenCV
"""

from typing import List, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Point(BaseModel):
    """
    Immutable 2D point (x, y).

    Coordinates are floats in whatever reference frame the producer
    documents (frame pixels or capture pixels). Non-finite values are
    representable so that validation helpers can reject them.

    Example:
        >>> p = Point(x=100, y=200.5)
        >>> p.to_tuple()
        (100.0, 200.5)
    """

    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="X-coordinate (horizontal)")
    y: float = Field(..., description="Y-coordinate (vertical)")

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Point":
        """
        Create Point from numpy array of shape (2,).

        Raises:
            ValueError: If array shape is not (2,).
        """
        arr = np.asarray(arr)
        if arr.shape != (2,):
            raise ValueError(f"Expected array of shape (2,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]))

    def to_tuple(self) -> Tuple[float, float]:
        """Get coordinates as (x, y) tuple."""
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"Point(x={self.x:g}, y={self.y:g})"


# Canonical order: [top_left, top_right, bottom_right, bottom_left]
Quad = List[Point]


class Rectangle(BaseModel):
    """Named-corner form of a quad, as exchanged with platform glue."""

    model_config = ConfigDict(frozen=True)

    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    def to_dict(self) -> dict:
        """Serialize to the camelCase corner map used by event payloads."""
        return {
            "topLeft": {"x": self.top_left.x, "y": self.top_left.y},
            "topRight": {"x": self.top_right.x, "y": self.top_right.y},
            "bottomRight": {"x": self.bottom_right.x, "y": self.bottom_right.y},
            "bottomLeft": {"x": self.bottom_left.x, "y": self.bottom_left.y},
        }


def quad_from_numpy(arr: np.ndarray) -> Quad:
    """
    Convert a (4, 2) or OpenCV-style (4, 1, 2) array into a list of Points.

    Raises:
        ValueError: If the array does not hold exactly 4 points.
    """
    arr = np.asarray(arr, dtype=np.float64).reshape(-1, 2)
    if arr.shape != (4, 2):
        raise ValueError(f"Expected 4 points, got array of shape {arr.shape}")
    return [Point(x=float(px), y=float(py)) for px, py in arr]


def quad_to_numpy(quad: Sequence[Point], dtype=np.float32) -> np.ndarray:
    """Convert a quad into a (4, 2) array suitable for OpenCV calls."""
    return np.array([[p.x, p.y] for p in quad], dtype=dtype)


class ImageBuffer(BaseModel):
    """
    A raw camera frame as handed to the scanner.

    Frames must be non-empty 8-bit arrays laid out as (H, W) or (H, W, C)
    with 1, 3 (BGR) or 4 (BGRA) channels, which is what the detector and
    rectifier accept.

    Example:
        >>> buf = ImageBuffer(data=np.zeros((480, 640, 3), dtype=np.uint8))
        >>> buf.width, buf.height
        (640, 480)
    """

    data: np.ndarray

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("data")
    @classmethod
    def _check_frame(cls, frame: np.ndarray) -> np.ndarray:
        if frame.size == 0:
            raise ValueError("Frame is empty")
        if frame.ndim not in (2, 3):
            raise ValueError(f"Frame must be 2D or 3D, got shape {frame.shape}")
        if frame.ndim == 3 and frame.shape[2] not in (1, 3, 4):
            raise ValueError(f"Frame has {frame.shape[2]} channels, expected 1, 3 or 4")
        if frame.dtype != np.uint8:
            raise ValueError(f"Frame must be uint8, got {frame.dtype}")
        return frame

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        """1 for single-plane frames."""
        return 1 if self.data.ndim == 2 else int(self.data.shape[2])

    def snapshot(self) -> "ImageBuffer":
        """Deep copy, detached from any buffer the producer may reuse."""
        return ImageBuffer(data=self.data.copy())

