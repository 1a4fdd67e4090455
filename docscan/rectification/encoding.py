"""
Image encoding and output.

Encodes capture results as JPEG and hands them out either as files in the
configured output directory or as base64 strings.
"""

import base64
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from docscan.common.errors import FileWriteFailedError, ImageCreationFailedError
from docscan.config_loader import CaptureConfig

logger = logging.getLogger(__name__)


class ImageEncoder:
    """
    JPEG encoder honoring the quality floor.

    Example:
        >>> encoder = ImageEncoder(CaptureConfig(output_dir="/tmp/scans"))
        >>> path = encoder.export(image, prefix="docscan")
    """

    def __init__(self, config: Optional[CaptureConfig] = None):
        self.config = config or CaptureConfig()

    @property
    def effective_quality(self) -> int:
        """Requested quality clamped into [quality_floor, 100]."""
        return max(self.config.quality_floor, min(100, self.config.quality))

    def encode_jpeg(self, image: np.ndarray) -> bytes:
        """
        Encode an image as JPEG bytes.

        Raises:
            ImageCreationFailedError: If the image is empty or encoding fails.
        """
        if image is None or image.size == 0:
            raise ImageCreationFailedError("Cannot encode an empty image")

        try:
            ok, buffer = cv2.imencode(
                ".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, self.effective_quality]
            )
        except cv2.error as e:
            raise ImageCreationFailedError(f"JPEG encoding failed: {e}") from e

        if not ok:
            raise ImageCreationFailedError("JPEG encoding returned no data")

        return buffer.tobytes()

    def to_base64(self, image: np.ndarray) -> str:
        """Encode an image as a base64 JPEG string."""
        return base64.b64encode(self.encode_jpeg(image)).decode("ascii")

    def write_file(self, image: np.ndarray, prefix: str = "docscan") -> str:
        """
        Encode and write an image to ``output_dir/<prefix>-<timestamp>.jpg``.

        Returns:
            Absolute path of the written file.

        Raises:
            ImageCreationFailedError: If encoding fails.
            FileWriteFailedError: If the file cannot be written.
        """
        data = self.encode_jpeg(image)

        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        output_dir = Path(self.config.output_dir)
        path = output_dir / f"{prefix}-{timestamp}.jpg"

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise FileWriteFailedError(f"Failed to write {path}: {e}") from e

        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return str(path.resolve())

    def export(self, image: np.ndarray, prefix: str = "docscan") -> str:
        """Return a file path or a base64 string, depending on ``use_base64``."""
        if self.config.use_base64:
            return self.to_base64(image)
        return self.write_file(image, prefix)
