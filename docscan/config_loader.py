"""
Configuration loader with Pydantic validation for the scanner.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


class StabilityPolicy(str, Enum):
    """How the stability counter reacts to a bad frame."""

    HARD_RESET = "hard_reset"  # Any moved frame resets the counter to 0
    DECREMENT = "decrement"  # Bad-angle / too-far / moved frames decrement by 1


class DetectionConfig(BaseModel):
    """Edge/contour detection parameters.

    Attributes:
        clahe_clip_limit: CLAHE contrast clip limit.
        clahe_tile_grid: CLAHE tile grid size (square).
        blur_kernel: Gaussian blur kernel size (odd).
        canny_low: Canny hysteresis low threshold.
        canny_high: Canny hysteresis high threshold.
        morph_kernel: Rectangular closing kernel size.
        approx_epsilon_ratio: Douglas-Peucker epsilon as a fraction of perimeter.
        min_area_ratio: Minimum candidate area as a fraction of the frame.
        max_area_ratio: Maximum candidate area as a fraction of the frame.
        min_area_px: Absolute minimum candidate area in px^2.
        adaptive_fallback: Retry with an adaptive threshold when Canny finds nothing.
        adaptive_block_size: Adaptive threshold neighbourhood size (odd).
        adaptive_c: Constant subtracted from the adaptive mean.
    """

    clahe_clip_limit: float = Field(default=2.0, gt=0.0)
    clahe_tile_grid: int = Field(default=8, gt=0)
    blur_kernel: int = Field(default=5, gt=0)
    canny_low: float = Field(default=40.0, ge=0.0)
    canny_high: float = Field(default=140.0, gt=0.0)
    morph_kernel: int = Field(default=5, gt=0)
    approx_epsilon_ratio: float = Field(default=0.02, gt=0.0, lt=1.0)
    min_area_ratio: float = Field(default=0.05, ge=0.0, le=1.0)
    max_area_ratio: float = Field(default=0.98, gt=0.0, le=1.0)
    min_area_px: float = Field(default=1000.0, ge=0.0)
    adaptive_fallback: bool = True
    adaptive_block_size: int = Field(default=15, gt=1)
    adaptive_c: float = 2.0

    @field_validator("blur_kernel", "adaptive_block_size")
    @classmethod
    def validate_odd(cls, v: int) -> int:
        """Gaussian and adaptive kernels must have odd sizes."""
        if v % 2 == 0:
            raise ValueError(f"Kernel size must be odd, got {v}")
        return v

    @model_validator(mode="after")
    def validate_ranges(self) -> "DetectionConfig":
        if self.canny_low >= self.canny_high:
            raise ValueError(
                f"canny_low ({self.canny_low}) must be less than "
                f"canny_high ({self.canny_high})"
            )
        if self.min_area_ratio >= self.max_area_ratio:
            raise ValueError(
                f"min_area_ratio ({self.min_area_ratio}) must be less than "
                f"max_area_ratio ({self.max_area_ratio})"
            )
        return self


class QualityGateConfig(BaseModel):
    """Thresholds for classifying a detected quad as GOOD / BAD_ANGLE / TOO_FAR."""

    angle_threshold_min: float = Field(default=60.0, ge=0.0)
    angle_threshold_ratio: float = Field(default=0.08, ge=0.0)
    margin_min: float = Field(default=120.0, ge=0.0)
    margin_ratio: float = Field(default=0.12, ge=0.0)


class StabilityConfig(BaseModel):
    """Stability tracking and auto-capture configuration.

    Attributes:
        distance_threshold: Max mean corner motion for a frame to count as stable.
        policy: Reaction to bad frames (``hard_reset`` or ``decrement``).
        detection_count_before_capture: Stable-frame threshold for auto-capture.
        auto_capture: Trigger capture automatically when the threshold is reached.
        quality_gate: Quad quality thresholds used by the ``decrement`` policy.
    """

    distance_threshold: float = Field(default=8.0, gt=0.0)
    policy: StabilityPolicy = StabilityPolicy.HARD_RESET
    detection_count_before_capture: int = Field(default=8, ge=1)
    auto_capture: bool = True
    quality_gate: QualityGateConfig = Field(default_factory=QualityGateConfig)


class RectificationConfig(BaseModel):
    """Perspective warp configuration.

    Attributes:
        interpolation: Sampling method for the warp.
        min_quad_area: Quads with a smaller area (px^2) are degenerate.
        output_size: Fixed (width, height) canvas; None derives it from the quad.
    """

    interpolation: Literal["linear", "cubic", "nearest", "area", "lanczos"] = "linear"
    min_quad_area: float = Field(default=1.0, ge=0.0)
    output_size: Optional[Tuple[int, int]] = None

    @field_validator("output_size")
    @classmethod
    def validate_output_size(cls, v):
        if v is not None and (v[0] < 1 or v[1] < 1):
            raise ValueError(f"output_size must be positive, got {v}")
        return v


class CaptureConfig(BaseModel):
    """Capture output configuration.

    Attributes:
        quality: Requested JPEG quality (0-100).
        quality_floor: Lowest JPEG quality ever emitted.
        use_base64: Return base64 strings instead of file paths.
        output_dir: Directory for captured files.
        corner_offset_x: Horizontal calibration offset for the left corners.
        brightness: Added to every channel, as a fraction of 255 (0 = unchanged).
        contrast: Channel gain (1 = unchanged).
        saturation: HSV saturation gain (1 = unchanged, 0 = grayscale).
    """

    quality: int = Field(default=95, ge=0, le=100)
    quality_floor: int = Field(default=95, ge=0, le=100)
    use_base64: bool = False
    output_dir: str = "captures"
    corner_offset_x: float = 0.0
    brightness: float = Field(default=0.0, ge=-1.0, le=1.0)
    contrast: float = Field(default=1.0, ge=0.0)
    saturation: float = Field(default=1.0, ge=0.0)


class ScannerConfig(BaseModel):
    """Complete scanner configuration."""

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    stability: StabilityConfig = Field(default_factory=StabilityConfig)
    rectification: RectificationConfig = Field(default_factory=RectificationConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> ScannerConfig:
    """Load and validate scanner configuration from a YAML file.

    Sections missing from the file fall back to their defaults.

    Args:
        config_path: Path to YAML configuration file.

    Returns:
        Validated ScannerConfig object.

    Raises:
        FileNotFoundError: If config file does not exist.
        yaml.YAMLError: If YAML parsing fails.
        pydantic.ValidationError: If configuration validation fails.

    Example:
        >>> config = load_config()
        >>> config.stability.detection_count_before_capture
        8
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.debug(f"Loading scanner config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    config = ScannerConfig(**config_dict)
    logger.info(f"Loaded scanner configuration from {config_path}")
    return config


def get_default_config() -> ScannerConfig:
    """Get default configuration from the bundled config.yaml file."""
    return load_config(DEFAULT_CONFIG_PATH)
