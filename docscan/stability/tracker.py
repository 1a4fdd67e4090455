"""
Stability tracking for auto-capture.

Turns a stream of per-frame detections into a "stable frame count". One
tracker belongs to one scanner session; updates are serialized by an
internal lock so the (last_quad, stable_count) pair is never torn.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from docscan.common.types import Point, Quad
from docscan.config_loader import StabilityConfig, StabilityPolicy
from docscan.geometry.quad_utils import is_valid_quad, quad_distance
from docscan.stability.quality import QuadQuality

logger = logging.getLogger(__name__)

# Mean corner motion (reference-frame units) below which a frame is stable
STABILITY_DISTANCE = 8.0


@dataclass(frozen=True)
class StabilityState:
    """Immutable view of the tracker state."""

    last_quad: Optional[Quad]
    stable_count: int


class StabilityTracker:
    """
    Counts consecutive stable detections.

    Two states: Unstable (count 0) and Accumulating (count > 0). There is no
    terminal state.

    Policies:
        HARD_RESET: a lost detection clears the state; the first valid
            detection after that counts as 1; a detection that moved by at
            least ``distance_threshold`` resets the count to 0.
        DECREMENT: a lost detection still clears the state, but a moved,
            BAD_ANGLE or TOO_FAR detection only decrements the count (never
            below 0). ``max_count`` caps the count.

    Example:
        >>> tracker = StabilityTracker()
        >>> tracker.update(quad)
        1
        >>> tracker.update(quad)
        2
        >>> tracker.update(None)
        0
    """

    def __init__(
        self,
        distance_threshold: float = STABILITY_DISTANCE,
        policy: StabilityPolicy = StabilityPolicy.HARD_RESET,
        max_count: Optional[int] = None,
    ):
        self.distance_threshold = distance_threshold
        self.policy = StabilityPolicy(policy)
        self.max_count = max_count

        self._lock = threading.Lock()
        self._last_quad: Optional[Quad] = None
        self._stable_count = 0

        logger.debug(
            f"StabilityTracker created (policy={self.policy.value}, "
            f"distance={distance_threshold}, max_count={max_count})"
        )

    @classmethod
    def from_config(cls, config: StabilityConfig) -> "StabilityTracker":
        """Build a tracker; the count is capped only under the decrement policy."""
        max_count = (
            config.detection_count_before_capture
            if config.policy == StabilityPolicy.DECREMENT
            else None
        )
        return cls(
            distance_threshold=config.distance_threshold,
            policy=config.policy,
            max_count=max_count,
        )

    @property
    def stable_count(self) -> int:
        with self._lock:
            return self._stable_count

    @property
    def last_quad(self) -> Optional[Quad]:
        with self._lock:
            return self._last_quad

    def snapshot(self) -> StabilityState:
        """Read both fields atomically."""
        with self._lock:
            return StabilityState(
                last_quad=self._last_quad, stable_count=self._stable_count
            )

    def update(
        self,
        current: Optional[Sequence[Point]],
        quality: QuadQuality = QuadQuality.GOOD,
    ) -> int:
        """
        Feed one frame's detection and return the new stable count.

        Args:
            current: Ordered quad detected in this frame, or None.
            quality: Framing classification; only consulted by the
                decrement policy.

        Returns:
            Stable frame count after this update.
        """
        with self._lock:
            if not is_valid_quad(current):
                if self._stable_count:
                    logger.debug("Detection lost, resetting stability")
                self._last_quad = None
                self._stable_count = 0
                return 0

            current = list(current)

            if self._last_quad is None:
                self._last_quad = current
                self._stable_count = self._clamp(1)
                return self._stable_count

            diff = quad_distance(current, self._last_quad)
            moved = diff >= self.distance_threshold

            if self.policy == StabilityPolicy.DECREMENT:
                if moved or quality != QuadQuality.GOOD:
                    self._stable_count = max(self._stable_count - 1, 0)
                else:
                    self._stable_count = self._clamp(self._stable_count + 1)
            elif moved:
                self._stable_count = 0
            else:
                self._stable_count += 1

            self._last_quad = current

            logger.debug(
                f"Stability update: diff={diff:.2f}, quality={quality.value}, "
                f"stable_count={self._stable_count}"
            )
            return self._stable_count

    def reset(self) -> None:
        """Return to the Unstable state."""
        with self._lock:
            self._last_quad = None
            self._stable_count = 0
        logger.debug("Stability state reset")

    def _clamp(self, count: int) -> int:
        if self.max_count is not None:
            return min(count, self.max_count)
        return count
