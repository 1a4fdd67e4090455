"""
Scanner session: the entry point used by platform glue.

Wires the pipeline together:
1. Frame source pushes frames (synchronously or via the background worker)
2. Document detector finds the quad
3. Stability tracker updates the stable frame count
4. Detection sink receives a DetectionEvent
5. Auto-capture fires once the count reaches the configured threshold

Detection results flow from a single producer (the analysing thread) to a
single consumer (``_consume``), which is the only writer of the tracker.
"""

import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Optional, Tuple

import numpy as np

from docscan.capture.frame_worker import FrameAnalysisWorker
from docscan.capture.orchestrator import CaptureOrchestrator, StillSource
from docscan.capture.types import CaptureResult
from docscan.common.errors import (
    CaptureInProgressError,
    CaptureUnavailableError,
    DegenerateQuadError,
)
from docscan.common.types import ImageBuffer, Quad
from docscan.config_loader import ScannerConfig, StabilityPolicy, load_config
from docscan.detection.detector import DocumentDetector, prepare_frame
from docscan.detection.types import DetectionEvent, DetectionResult
from docscan.rectification.encoding import ImageEncoder
from docscan.rectification.rectifier import PerspectiveRectifier
from docscan.stability.quality import QuadQuality, evaluate_quad_quality
from docscan.stability.tracker import StabilityTracker

logger = logging.getLogger(__name__)

DetectionSink = Callable[[DetectionEvent], None]
CaptureSink = Callable[[CaptureResult], None]
CaptureErrorSink = Callable[[BaseException], None]


class ScannerSession:
    """
    One scanning session: detector, tracker and capture state for a view.

    Example:
        >>> session = ScannerSession(still_source=camera.grab_still,
        ...                          on_capture=lambda r: print(r.cropped))
        >>> for frame in camera.frames():
        ...     session.submit_frame(frame)
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        config_path: Optional[Path] = None,
        still_source: Optional[StillSource] = None,
        on_detection: Optional[DetectionSink] = None,
        on_capture: Optional[CaptureSink] = None,
        on_capture_error: Optional[CaptureErrorSink] = None,
    ):
        """
        Initialize the session.

        Args:
            config: Pre-loaded configuration. If None, loads from file.
            config_path: Path to config file. If None, uses the bundled one.
            still_source: Full-resolution still provider for captures.
            on_detection: Receives one DetectionEvent per analysed frame.
            on_capture: Receives auto-triggered and async capture results.
            on_capture_error: Receives errors of auto-triggered captures.
        """
        if config is not None:
            self.config = config
        else:
            self.config = load_config(config_path) if config_path else load_config()

        self.on_detection = on_detection
        self.on_capture = on_capture
        self.on_capture_error = on_capture_error

        self.detector = DocumentDetector(self.config.detection)
        self.tracker = StabilityTracker.from_config(self.config.stability)
        self.orchestrator = CaptureOrchestrator(
            still_source=still_source,
            rectifier=PerspectiveRectifier(self.config.rectification),
            encoder=ImageEncoder(self.config.capture),
            tracker=self.tracker,
            corner_offset_x=self.config.capture.corner_offset_x,
            brightness=self.config.capture.brightness,
            contrast=self.config.capture.contrast,
            saturation=self.config.capture.saturation,
        )

        self._lock = threading.Lock()
        self._last_detection: Optional[DetectionResult] = None
        self._worker: Optional[FrameAnalysisWorker] = None

        logger.info(
            f"Scanner session started (policy={self.config.stability.policy.value}, "
            f"threshold={self.config.stability.detection_count_before_capture}, "
            f"auto_capture={self.config.stability.auto_capture})"
        )

    @property
    def last_detection(self) -> Optional[DetectionResult]:
        """Most recent detection that found a document, None after a loss."""
        with self._lock:
            return self._last_detection

    @property
    def stable_count(self) -> int:
        return self.tracker.stable_count

    def attach_still_source(self, still_source: Optional[StillSource]) -> None:
        self.orchestrator.attach_still_source(still_source)

    def process_frame(
        self,
        pixels: np.ndarray,
        width: Optional[int] = None,
        height: Optional[int] = None,
        rotation: int = 0,
    ) -> DetectionEvent:
        """
        Analyse one frame on the calling thread.

        Args:
            pixels: Raw frame (H, W[, C]) uint8, before rotation.
            width: Declared buffer width; checked against ``pixels`` if given.
            height: Declared buffer height; checked against ``pixels`` if given.
            rotation: Clockwise degrees needed to make the frame upright.

        Returns:
            The DetectionEvent also delivered to the detection sink.
        """
        _check_dimensions(pixels, width, height)

        frame = prepare_frame(pixels, rotation)
        return self._consume(self.detector.detect_result(frame))

    def submit_frame(
        self,
        pixels: np.ndarray,
        width: Optional[int] = None,
        height: Optional[int] = None,
        rotation: int = 0,
    ) -> bool:
        """
        Hand a frame to the background worker.

        Returns:
            False if the frame was dropped because analysis is still busy.
        """
        _check_dimensions(pixels, width, height)

        if self._worker is None:
            self._worker = FrameAnalysisWorker(
                lambda frame, rot: self.process_frame(frame, rotation=rot)
            )
        return self._worker.submit(pixels, rotation)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the background worker has no frame in flight."""
        if self._worker is None:
            return True
        return self._worker.wait_idle(timeout)

    def capture(self) -> CaptureResult:
        """Manual capture on the calling thread using the last known quad."""
        return self.orchestrator.capture(self.last_detection)

    def capture_async(self) -> "Future[CaptureResult]":
        """Manual capture on the capture thread; the result also goes to ``on_capture``."""
        future = self.orchestrator.capture_async(self.last_detection)
        future.add_done_callback(self._deliver_capture)
        return future

    def reset(self) -> None:
        """Discard stability progress and the last known quad."""
        self.tracker.reset()
        with self._lock:
            self._last_detection = None
        logger.info("Scanner session reset")

    def close(self) -> None:
        """Stop background threads, waiting for in-flight work."""
        if self._worker is not None:
            self._worker.close()
            self._worker = None
        self.orchestrator.close()
        logger.info("Scanner session closed")

    def __enter__(self) -> "ScannerSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _consume(self, result: DetectionResult) -> DetectionEvent:
        quality = QuadQuality.GOOD
        if result.found and self.config.stability.policy == StabilityPolicy.DECREMENT:
            quality = evaluate_quad_quality(
                result.quad,
                result.frame_width,
                result.frame_height,
                self.config.stability.quality_gate,
            )

        # Sampled before the update: a capture finishing in between has
        # already cleared the tracker, so the count below starts over
        capture_running = self.orchestrator.is_capturing
        stable_count = self.tracker.update(result.quad, quality)

        with self._lock:
            self._last_detection = result if result.found else None

        event = DetectionEvent(
            quad=result.quad,
            stable_count=stable_count,
            frame_width=result.frame_width,
            frame_height=result.frame_height,
        )

        if self.on_detection is not None:
            self.on_detection(event)

        if not capture_running:
            self._maybe_auto_capture(event)
        return event

    def _maybe_auto_capture(self, event: DetectionEvent) -> None:
        stability = self.config.stability
        if not stability.auto_capture or event.quad is None:
            return
        if event.stable_count < stability.detection_count_before_capture:
            return
        if self.orchestrator.is_capturing:
            return

        logger.info(
            f"Auto-capture triggered: stable_count {event.stable_count} >= "
            f"{stability.detection_count_before_capture}"
        )
        try:
            self.capture_async()
        except (CaptureInProgressError, CaptureUnavailableError) as e:
            logger.warning(f"Auto-capture skipped: {e}")

    def _deliver_capture(self, future: "Future[CaptureResult]") -> None:
        error = future.exception()
        if error is not None:
            if self.on_capture_error is not None:
                self.on_capture_error(error)
            return

        if self.on_capture is not None:
            self.on_capture(future.result())


def _check_dimensions(
    pixels: np.ndarray, width: Optional[int], height: Optional[int]
) -> None:
    """Validate a raw frame (uint8, non-empty) against its declared size."""
    buffer = ImageBuffer(data=pixels)
    if width is not None and buffer.width != width:
        raise ValueError(f"Frame width {buffer.width} != declared {width}")
    if height is not None and buffer.height != height:
        raise ValueError(f"Frame height {buffer.height} != declared {height}")


def detect_and_rectify(
    image: np.ndarray, config: Optional[ScannerConfig] = None
) -> Tuple[Optional[Quad], np.ndarray]:
    """
    Convenience function for one-shot scanning of a still image.

    Args:
        image: Photo containing a document.
        config: Optional custom configuration. Uses defaults if None.

    Returns:
        (quad, flattened) when a document is found, else (None, image).

    Example:
        >>> quad, flat = detect_and_rectify(cv2.imread("page.jpg"))
        >>> cv2.imwrite("flat.jpg", flat)
    """
    config = config or ScannerConfig()
    quad = DocumentDetector(config.detection).detect(image)
    if quad is None:
        logger.warning("No document detected, returning original image")
        return None, image

    try:
        return quad, PerspectiveRectifier(config.rectification).rectify(image, quad)
    except DegenerateQuadError as e:
        logger.warning(f"Rectification failed, returning original image: {e}")
        return None, image
