"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import cv2
import numpy as np
import pytest

from docscan.common.types import Point
from docscan.config_loader import ScannerConfig

# Document corners used by the synthetic 640x480 frame
DOCUMENT_CORNERS = [(100, 100), (540, 100), (540, 380), (100, 380)]


def make_quad(coords):
    """Build a list of Points from (x, y) tuples."""
    return [Point(x=x, y=y) for x, y in coords]


@pytest.fixture
def document_quad():
    """Ordered quad matching the synthetic document."""
    return make_quad(DOCUMENT_CORNERS)


@pytest.fixture
def unordered_points():
    """The synthetic document corners in scrambled order."""
    return make_quad([(540, 380), (100, 100), (100, 380), (540, 100)])


@pytest.fixture
def document_frame():
    """640x480 BGR frame: white document on a black background."""
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    cv2.rectangle(frame, (100, 100), (540, 380), (255, 255, 255), thickness=-1)
    return frame


@pytest.fixture
def tilted_document_frame():
    """640x480 BGR frame with a perspective-skewed document."""
    frame = np.full((480, 640, 3), 30, dtype=np.uint8)
    pts = np.array([[150, 90], [520, 120], [560, 400], [110, 370]], dtype=np.int32)
    cv2.fillPoly(frame, [pts], (235, 235, 235))
    return frame, make_quad([(150, 90), (520, 120), (560, 400), (110, 370)])


@pytest.fixture
def blank_frame():
    """Uniform gray frame without any document."""
    return np.full((480, 640, 3), 128, dtype=np.uint8)


@pytest.fixture
def noisy_frame():
    """Uniform gray frame with low-amplitude sensor noise."""
    rng = np.random.default_rng(42)
    noise = rng.integers(-4, 5, size=(480, 640, 3))
    return np.clip(120 + noise, 0, 255).astype(np.uint8)


@pytest.fixture
def gradient_image():
    """Smooth synthetic 200x300 image for warp round-trip checks."""
    xs = np.linspace(0, 255, 300, dtype=np.float32)
    ys = np.linspace(0, 255, 200, dtype=np.float32)
    gx, gy = np.meshgrid(xs, ys)
    image = np.dstack([gx, gy, (gx + gy) / 2]).astype(np.uint8)
    return image


@pytest.fixture
def scanner_config(tmp_path):
    """Default configuration writing captures into a temp directory."""
    config = ScannerConfig()
    config.capture.output_dir = str(tmp_path / "captures")
    return config
