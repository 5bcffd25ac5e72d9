"""
Exponential smoothing and normalization of raw head pose.
"""
from typing import Tuple

from core.constants import DEFAULT_SMOOTHING
from core.models import Pose


class PoseSmoother:
    """
    Per-axis exponential moving average over raw pose samples.

    smoothed = smoothed * (1 - alpha) + raw * alpha

    The running average starts at (0, 0) and is held across frames,
    including frames where no face was detected.
    """

    def __init__(self, smoothing_factor: float = DEFAULT_SMOOTHING,
                 sensitivity: Tuple[float, float] = (1.0, 1.0)):
        """
        Args:
            smoothing_factor: EMA factor in (0, 1]; lower is smoother/slower
            sensitivity: (yaw, pitch) scale applied after the center offset
        """
        self._alpha = DEFAULT_SMOOTHING
        self.smoothing_factor = smoothing_factor
        self.sensitivity = sensitivity
        self.raw = Pose(0.0, 0.0)
        self.smoothed = Pose(0.0, 0.0)

    @property
    def smoothing_factor(self) -> float:
        return self._alpha

    @smoothing_factor.setter
    def smoothing_factor(self, value: float):
        if not 0.0 < value <= 1.0:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {value}")
        self._alpha = float(value)

    def update(self, raw_yaw: float, raw_pitch: float) -> Pose:
        """Feed one raw sample and return the new smoothed pose."""
        a = self._alpha
        self.raw = Pose(raw_yaw, raw_pitch)
        self.smoothed = Pose(
            self.smoothed.yaw * (1 - a) + raw_yaw * a,
            self.smoothed.pitch * (1 - a) + raw_pitch * a,
        )
        return self.smoothed

    def normalize(self, smoothed: Pose, center_offset: Tuple[float, float]) -> Pose:
        """Subtract the center offset, then apply sensitivity scaling."""
        return Pose(
            (smoothed.yaw - center_offset[0]) * self.sensitivity[0],
            (smoothed.pitch - center_offset[1]) * self.sensitivity[1],
        )

    def reset(self):
        self.raw = Pose(0.0, 0.0)
        self.smoothed = Pose(0.0, 0.0)
