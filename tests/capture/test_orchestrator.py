"""
Unit tests for CaptureOrchestrator.

Covers the capture flow, fallbacks, error handling and single-flight
behaviour.
"""

import base64
import threading
from pathlib import Path

import cv2
import numpy as np
import pytest

from docscan.capture.orchestrator import CaptureOrchestrator
from docscan.capture.types import CaptureState
from docscan.common.errors import (
    CaptureInProgressError,
    CaptureUnavailableError,
    ImageCreationFailedError,
)
from docscan.config_loader import CaptureConfig
from docscan.detection.types import DetectionResult
from docscan.rectification.encoding import ImageEncoder
from docscan.rectification.rectifier import PerspectiveRectifier
from docscan.stability.tracker import StabilityTracker
from tests.conftest import make_quad


@pytest.fixture
def still(document_frame):
    """Full-resolution still: the preview frame at twice the size."""
    return cv2.resize(document_frame, (1280, 960), interpolation=cv2.INTER_NEAREST)


@pytest.fixture
def detection(document_quad):
    return DetectionResult(quad=document_quad, frame_width=640, frame_height=480)


@pytest.fixture
def encoder(tmp_path):
    return ImageEncoder(CaptureConfig(output_dir=str(tmp_path / "captures")))


@pytest.fixture
def orchestrator(still, encoder):
    orchestrator = CaptureOrchestrator(still_source=lambda: still, encoder=encoder)
    yield orchestrator
    orchestrator.close()


class TestCapture:
    """Tests for the synchronous capture flow."""

    def test_crops_document(self, orchestrator, detection):
        result = orchestrator.capture(detection)

        assert result.is_cropped
        assert (result.width, result.height) == (1280, 960)
        assert result.quad[0].to_tuple() == (200.0, 200.0)
        assert result.quad[2].to_tuple() == (1080.0, 760.0)
        assert result.cropped != result.original

        cropped = cv2.imread(result.cropped)
        assert cropped.shape == (560, 880, 3)
        assert cropped.mean() > 250
        assert cv2.imread(result.original).shape == (960, 1280, 3)

    def test_output_names(self, orchestrator, detection):
        result = orchestrator.capture(detection)

        assert Path(result.original).name.startswith("docscan-")
        assert Path(result.cropped).name.startswith("docscan-cropped-")

    def test_no_detection_falls_back_to_original(self, orchestrator):
        result = orchestrator.capture(None)

        assert not result.is_cropped
        assert result.cropped == result.original
        assert result.to_payload()["rectangleCoordinates"] is None

    def test_lost_quad_falls_back_to_original(self, orchestrator):
        result = orchestrator.capture(DetectionResult(None, 640, 480))
        assert result.cropped == result.original

    def test_degenerate_quad_falls_back_to_original(self, orchestrator):
        flat = DetectionResult(make_quad([(10, 10)] * 4), 640, 480)

        result = orchestrator.capture(flat)

        assert result.quad is None
        assert result.cropped == result.original

    def test_corner_calibration(self, still, encoder, detection):
        orchestrator = CaptureOrchestrator(
            still_source=lambda: still, encoder=encoder, corner_offset_x=30
        )

        result = orchestrator.capture(detection)

        assert result.quad[0].to_tuple() == (230.0, 200.0)
        assert result.quad[1].to_tuple() == (1080.0, 200.0)
        assert result.quad[3].to_tuple() == (230.0, 760.0)

    def test_base64_output(self, still, detection):
        encoder = ImageEncoder(CaptureConfig(use_base64=True))
        orchestrator = CaptureOrchestrator(still_source=lambda: still, encoder=encoder)

        result = orchestrator.capture(detection)

        assert base64.b64decode(result.original).startswith(b"\xff\xd8")
        assert len(result.cropped) < len(result.original)

    def test_payload(self, orchestrator, detection):
        payload = orchestrator.capture(detection).to_payload()

        assert payload["width"] == 1280
        assert payload["height"] == 960
        assert payload["rectangleCoordinates"]["topRight"] == {"x": 1080.0, "y": 200.0}

    def test_still_is_copied(self, encoder, detection, still):
        buffer = still.copy()

        def source():
            return buffer

        orchestrator = CaptureOrchestrator(still_source=source, encoder=encoder)
        orchestrator.capture(detection)
        # The producer's buffer is never written to
        assert np.array_equal(buffer, still)


class TestCaptureErrors:
    """Tests for rejected and failed captures."""

    def test_no_still_source(self, encoder):
        orchestrator = CaptureOrchestrator(encoder=encoder)

        with pytest.raises(CaptureUnavailableError):
            orchestrator.capture()
        assert orchestrator.state is CaptureState.IDLE

    def test_attach_and_detach_source(self, encoder, still):
        orchestrator = CaptureOrchestrator(encoder=encoder)

        orchestrator.attach_still_source(lambda: still)
        assert orchestrator.capture().width == 1280

        orchestrator.attach_still_source(None)
        with pytest.raises(CaptureUnavailableError):
            orchestrator.capture()

    def test_empty_still(self, encoder):
        orchestrator = CaptureOrchestrator(
            still_source=lambda: np.zeros((0, 0, 3), dtype=np.uint8), encoder=encoder
        )

        with pytest.raises(ImageCreationFailedError):
            orchestrator.capture()
        assert orchestrator.state is CaptureState.IDLE

    def test_source_error_returns_to_idle(self, encoder):
        def broken():
            raise RuntimeError("camera disconnected")

        orchestrator = CaptureOrchestrator(still_source=broken, encoder=encoder)

        with pytest.raises(RuntimeError, match="camera disconnected"):
            orchestrator.capture()
        assert orchestrator.state is CaptureState.IDLE

    def test_tracker_reset_after_success(self, orchestrator, detection, document_quad):
        tracker = StabilityTracker()
        orchestrator.tracker = tracker
        for _ in range(5):
            tracker.update(document_quad)

        orchestrator.capture(detection)

        assert tracker.stable_count == 0
        assert tracker.last_quad is None

    def test_tracker_reset_after_failure(self, encoder, document_quad):
        tracker = StabilityTracker()
        tracker.update(document_quad)
        orchestrator = CaptureOrchestrator(
            still_source=lambda: None, encoder=encoder, tracker=tracker
        )

        with pytest.raises(ImageCreationFailedError):
            orchestrator.capture()
        assert tracker.stable_count == 0


class TestSingleFlight:
    """Only one capture may run at a time."""

    def test_second_request_rejected_while_capturing(self, still, encoder, detection):
        entered = threading.Event()
        release = threading.Event()

        def slow_source():
            entered.set()
            assert release.wait(5)
            return still

        orchestrator = CaptureOrchestrator(still_source=slow_source, encoder=encoder)
        try:
            future = orchestrator.capture_async(detection)
            assert entered.wait(5)
            assert orchestrator.is_capturing

            with pytest.raises(CaptureInProgressError):
                orchestrator.capture(detection)
            with pytest.raises(CaptureInProgressError):
                orchestrator.capture_async(detection)

            release.set()
            result = future.result(timeout=10)
        finally:
            release.set()
            orchestrator.close()

        assert result.is_cropped
        assert orchestrator.state is CaptureState.IDLE

    def test_sequential_captures_allowed(self, orchestrator, detection):
        first = orchestrator.capture(detection)
        second = orchestrator.capture_async(detection).result(timeout=10)

        assert first.original != second.original
        assert orchestrator.state is CaptureState.IDLE

    def test_async_failure_delivered_through_future(self, encoder):
        orchestrator = CaptureOrchestrator(still_source=lambda: None, encoder=encoder)
        try:
            future = orchestrator.capture_async()
            with pytest.raises(ImageCreationFailedError):
                future.result(timeout=10)
        finally:
            orchestrator.close()
        assert orchestrator.state is CaptureState.IDLE


class FailingRectifier(PerspectiveRectifier):
    """Rectifier whose warp fails inside OpenCV."""

    def rectify(self, image, quad, output_size=None):
        raise cv2.error("warpPerspective: unsupported format")


class TestCropFallbacks:
    """Crop and colour failures never fail the capture."""

    def test_opencv_failure_falls_back_to_original(self, still, encoder, detection):
        orchestrator = CaptureOrchestrator(
            still_source=lambda: still, rectifier=FailingRectifier(), encoder=encoder
        )

        result = orchestrator.capture(detection)

        assert result.quad is None
        assert result.cropped == result.original
        assert orchestrator.state is CaptureState.IDLE


class TestColorControls:
    """Colour controls apply to the cropped image only."""

    def test_cropped_image_adjusted(self, still, encoder, detection):
        orchestrator = CaptureOrchestrator(
            still_source=lambda: still, encoder=encoder, brightness=-0.2
        )

        result = orchestrator.capture(detection)

        # White document darkened by 0.2 * 255 = 51
        assert abs(cv2.imread(result.cropped).mean() - 204) < 3
        original = cv2.imread(result.original)
        assert original[480, 640].min() > 250

    def test_neutral_controls_leave_crop_untouched(self, orchestrator, detection):
        result = orchestrator.capture(detection)
        assert cv2.imread(result.cropped).mean() > 250

    def test_adjustment_failure_keeps_unadjusted_crop(
        self, still, encoder, detection, monkeypatch
    ):
        def broken(*args, **kwargs):
            raise cv2.error("cvtColor: bad depth")

        monkeypatch.setattr(
            "docscan.capture.orchestrator.apply_color_controls", broken
        )
        orchestrator = CaptureOrchestrator(
            still_source=lambda: still, encoder=encoder, contrast=1.5
        )

        result = orchestrator.capture(detection)

        assert result.is_cropped
        assert cv2.imread(result.cropped).mean() > 250

    def test_fallback_original_not_adjusted(self, still, encoder):
        orchestrator = CaptureOrchestrator(
            still_source=lambda: still, encoder=encoder, brightness=-0.5
        )

        result = orchestrator.capture(None)

        assert result.cropped == result.original
        assert cv2.imread(result.original)[480, 640].min() > 250
