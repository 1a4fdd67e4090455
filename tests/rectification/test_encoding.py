"""
Unit tests for JPEG encoding and output.
"""

import base64
from pathlib import Path

import cv2
import numpy as np
import pytest

from docscan.common.errors import FileWriteFailedError, ImageCreationFailedError
from docscan.config_loader import CaptureConfig
from docscan.rectification.encoding import ImageEncoder

JPEG_MAGIC = b"\xff\xd8"


@pytest.fixture
def encoder(tmp_path):
    return ImageEncoder(CaptureConfig(output_dir=str(tmp_path / "out")))


class TestQuality:
    """Tests for the JPEG quality floor."""

    @pytest.mark.parametrize(
        "quality, floor, expected",
        [(95, 95, 95), (50, 95, 95), (100, 95, 100), (50, 0, 50), (0, 0, 0)],
    )
    def test_effective_quality(self, quality, floor, expected):
        config = CaptureConfig(quality=quality, quality_floor=floor)
        assert ImageEncoder(config).effective_quality == expected

    def test_low_quality_request_is_raised_to_floor(self, gradient_image):
        low = ImageEncoder(CaptureConfig(quality=10, quality_floor=95))
        exact = ImageEncoder(CaptureConfig(quality=95, quality_floor=0))
        assert low.encode_jpeg(gradient_image) == exact.encode_jpeg(gradient_image)


class TestEncode:
    """Tests for encode_jpeg and to_base64."""

    def test_encode_jpeg(self, encoder, gradient_image):
        data = encoder.encode_jpeg(gradient_image)

        assert data.startswith(JPEG_MAGIC)
        decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == gradient_image.shape

    def test_encode_empty_raises(self, encoder):
        with pytest.raises(ImageCreationFailedError):
            encoder.encode_jpeg(None)
        with pytest.raises(ImageCreationFailedError):
            encoder.encode_jpeg(np.zeros((0, 0, 3), dtype=np.uint8))

    def test_base64(self, encoder, gradient_image):
        text = encoder.to_base64(gradient_image)

        assert isinstance(text, str)
        assert base64.b64decode(text).startswith(JPEG_MAGIC)


class TestWriteFile:
    """Tests for write_file and export."""

    def test_write_file(self, encoder, gradient_image, tmp_path):
        path = Path(encoder.write_file(gradient_image, prefix="docscan"))

        assert path.is_absolute()
        assert path.parent == (tmp_path / "out").resolve()
        assert path.name.startswith("docscan-")
        assert path.suffix == ".jpg"
        assert cv2.imread(str(path)).shape == gradient_image.shape

    def test_successive_files_do_not_collide(self, encoder, gradient_image):
        first = encoder.write_file(gradient_image)
        second = encoder.write_file(gradient_image)
        assert first != second

    def test_unwritable_directory(self, gradient_image, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        encoder = ImageEncoder(CaptureConfig(output_dir=str(blocker)))

        with pytest.raises(FileWriteFailedError):
            encoder.write_file(gradient_image)

    def test_export_file(self, encoder, gradient_image):
        assert Path(encoder.export(gradient_image)).exists()

    def test_export_base64(self, gradient_image, tmp_path):
        config = CaptureConfig(use_base64=True, output_dir=str(tmp_path / "unused"))
        result = ImageEncoder(config).export(gradient_image)

        assert base64.b64decode(result).startswith(JPEG_MAGIC)
        assert not (tmp_path / "unused").exists()
