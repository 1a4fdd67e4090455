"""
Capture orchestration.

Coordinates a single full-resolution capture at a time:

1. Enter CAPTURING (or fail fast with CaptureInProgressError)
2. Grab a still from the attached source (snapshot copy)
3. Scale the last detected quad to the still's resolution
4. Rectify, falling back to the original image on a degenerate quad or an
   OpenCV failure
5. Apply colour controls to the cropped image
6. Encode both images
7. Reset the stability tracker, then return to IDLE, on success or failure
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

import cv2
import numpy as np

from docscan.capture.types import CaptureResult, CaptureState
from docscan.common.errors import (
    CaptureInProgressError,
    CaptureUnavailableError,
    DegenerateQuadError,
    ImageCreationFailedError,
)
from docscan.common.types import Quad
from docscan.detection.types import DetectionResult
from docscan.geometry.coordinates import apply_corner_calibration, scale_coordinates
from docscan.geometry.quad_utils import is_valid_quad
from docscan.rectification.color import apply_color_controls
from docscan.rectification.encoding import ImageEncoder
from docscan.rectification.rectifier import PerspectiveRectifier
from docscan.stability.tracker import StabilityTracker

logger = logging.getLogger(__name__)

# Returns a full-resolution upright still image (H, W[, C]) uint8
StillSource = Callable[[], np.ndarray]


class CaptureOrchestrator:
    """
    Single-flight capture state machine.

    A request made while another capture is running is rejected
    immediately with ``CaptureInProgressError``; requests are never queued.
    A capture that has started cannot be aborted.

    Example:
        >>> orchestrator = CaptureOrchestrator(still_source=camera.grab_still)
        >>> result = orchestrator.capture(last_detection)
        >>> print(result.cropped)
    """

    def __init__(
        self,
        still_source: Optional[StillSource] = None,
        rectifier: Optional[PerspectiveRectifier] = None,
        encoder: Optional[ImageEncoder] = None,
        tracker: Optional[StabilityTracker] = None,
        corner_offset_x: float = 0.0,
        brightness: float = 0.0,
        contrast: float = 1.0,
        saturation: float = 1.0,
    ):
        self._still_source = still_source
        self.rectifier = rectifier or PerspectiveRectifier()
        self.encoder = encoder or ImageEncoder()
        self.tracker = tracker
        self.corner_offset_x = corner_offset_x
        self.brightness = brightness
        self.contrast = contrast
        self.saturation = saturation

        self._lock = threading.Lock()
        self._state = CaptureState.IDLE
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> CaptureState:
        with self._lock:
            return self._state

    @property
    def is_capturing(self) -> bool:
        return self.state is CaptureState.CAPTURING

    def attach_still_source(self, still_source: Optional[StillSource]) -> None:
        """Attach (or detach with None) the full-resolution image source."""
        with self._lock:
            self._still_source = still_source
        logger.info(f"Still source {'attached' if still_source else 'detached'}")

    def capture(self, last_detection: Optional[DetectionResult] = None) -> CaptureResult:
        """
        Run a capture on the calling thread.

        Args:
            last_detection: Most recent detection, in detection-frame
                coordinates. Without a quad the cropped output is the original.

        Raises:
            CaptureInProgressError: If a capture is already running.
            CaptureUnavailableError: If no still source is attached.
            ImageCreationFailedError: If the still or an output image cannot
                be produced.
            FileWriteFailedError: If an output file cannot be written.
        """
        source = self._begin()
        return self._run(source, last_detection)

    def capture_async(
        self, last_detection: Optional[DetectionResult] = None
    ) -> "Future[CaptureResult]":
        """
        Start a capture on the background capture thread.

        Contention is reported synchronously: CaptureInProgressError and
        CaptureUnavailableError are raised here, not through the future.
        """
        source = self._begin()
        try:
            return self._get_executor().submit(self._run, source, last_detection)
        except RuntimeError:
            self._finish()
            raise

    def close(self) -> None:
        """Shut down the background capture thread, waiting for a running capture."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _begin(self) -> StillSource:
        with self._lock:
            if self._state is CaptureState.CAPTURING:
                logger.warning("Capture requested while another is in progress")
                raise CaptureInProgressError("A capture request is already running.")

            if self._still_source is None:
                logger.warning("Capture requested before a still source was attached")
                raise CaptureUnavailableError("Image capture is not initialised yet.")

            self._state = CaptureState.CAPTURING
            return self._still_source

    def _finish(self) -> None:
        # Stability must be cleared before IDLE becomes visible to the session
        if self.tracker is not None:
            self.tracker.reset()
        with self._lock:
            self._state = CaptureState.IDLE

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="docscan-capture"
            )
        return self._executor

    def _run(
        self, source: StillSource, last_detection: Optional[DetectionResult]
    ) -> CaptureResult:
        try:
            still = source()
            if still is None or still.size == 0:
                raise ImageCreationFailedError("Still source returned no image")

            # Never warp a buffer the producer may still be writing into
            image = np.array(still, copy=True)
            height, width = image.shape[:2]
            logger.info(f"Captured still {width}x{height}")

            quad = self._quad_for_capture(last_detection, width, height)
            cropped_image = None
            if quad is not None:
                try:
                    cropped_image = self.rectifier.rectify(image, quad)
                except (DegenerateQuadError, cv2.error) as e:
                    logger.warning(f"Cropping skipped, using original image: {e}")
                    quad = None
            else:
                logger.info("No document quad available, using original image")

            if cropped_image is not None:
                cropped_image = self._adjust_colors(cropped_image)

            original = self.encoder.export(image, prefix="docscan")
            if cropped_image is None:
                cropped = original
            else:
                cropped = self.encoder.export(cropped_image, prefix="docscan-cropped")

            return CaptureResult(
                original=original,
                cropped=cropped,
                width=int(width),
                height=int(height),
                quad=quad,
            )
        except Exception as e:
            logger.error(f"Capture failed: {e}")
            raise
        finally:
            self._finish()

    def _adjust_colors(self, image: np.ndarray) -> np.ndarray:
        try:
            return apply_color_controls(
                image, self.brightness, self.contrast, self.saturation
            )
        except cv2.error as e:
            logger.error(f"Colour adjustment failed, keeping unadjusted image: {e}")
            return image

    def _quad_for_capture(
        self, last_detection: Optional[DetectionResult], width: int, height: int
    ) -> Optional[Quad]:
        if last_detection is None or not is_valid_quad(last_detection.quad):
            return None

        if last_detection.frame_width <= 0 or last_detection.frame_height <= 0:
            return None

        scaled = scale_coordinates(
            last_detection.quad,
            last_detection.frame_width,
            last_detection.frame_height,
            width,
            height,
        )
        return apply_corner_calibration(scaled, self.corner_offset_x)
