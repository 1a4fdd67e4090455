"""
Background frame analysis with a latest-wins policy.

One frame is analysed at a time on a dedicated thread. A frame that arrives
while the previous one is still being analysed is dropped, never queued, so
detection always works on fresh frames.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

FrameHandler = Callable[[np.ndarray, int], Any]
ErrorHandler = Callable[[Exception], None]


class FrameAnalysisWorker:
    """
    Single-slot background analyser.

    Args:
        handler: Called as ``handler(frame, rotation)`` on the worker thread.
        on_error: Receives exceptions raised by the handler; they are logged
            either way.

    Example:
        >>> worker = FrameAnalysisWorker(session.process_frame)
        >>> accepted = worker.submit(pixels, rotation=90)
    """

    def __init__(self, handler: FrameHandler, on_error: Optional[ErrorHandler] = None):
        self._handler = handler
        self._on_error = on_error
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="docscan-frames"
        )
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._busy = False
        self._closed = False

        self.processed_frames = 0
        self.dropped_frames = 0

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def submit(self, pixels: np.ndarray, rotation: int = 0) -> bool:
        """
        Offer a frame for analysis.

        The frame is copied so the producer may reuse its buffer.

        Returns:
            True if the frame was accepted, False if it was dropped.
        """
        with self._lock:
            if self._closed:
                return False
            if self._busy:
                self.dropped_frames += 1
                logger.debug(f"Analysis busy, dropped frame ({self.dropped_frames} total)")
                return False
            self._busy = True
            self._idle.clear()

        try:
            self._executor.submit(self._run, np.array(pixels, copy=True), rotation)
        except RuntimeError:
            # Closed between the check above and the submit
            with self._lock:
                self._busy = False
                self._idle.set()
            return False
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no frame is in flight. Returns False on timeout."""
        return self._idle.wait(timeout)

    def close(self, wait: bool = True) -> None:
        """Stop accepting frames and shut the worker thread down."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)

    def _run(self, frame: np.ndarray, rotation: int) -> None:
        try:
            self._handler(frame, rotation)
        except Exception as e:
            logger.exception(f"Frame analysis failed: {e}")
            if self._on_error is not None:
                self._on_error(e)
        finally:
            with self._lock:
                self._busy = False
                self.processed_frames += 1
                self._idle.set()
