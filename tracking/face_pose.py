"""
Face landmark geometry.

Landmarks are face-mesh points in unit image space (x, y in [0, 1]),
indexable by mesh index, each exposing .x and .y.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from core.constants import MOUTH_OPEN_THRESHOLD
from core.models import Pose


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0


def landmarks_from_points(points: Iterable[Sequence[float]]) -> List[Landmark]:
    """Build landmarks from [x, y] or [x, y, z] coordinate lists."""
    return [Landmark(*(float(v) for v in point)) for point in points]

# Face-mesh indices
NOSE_TIP = 1
LEFT_EYE = 33
RIGHT_EYE = 263
CHIN = 152
FOREHEAD = 10
UPPER_LIP = 13
LOWER_LIP = 14


def face_height(landmarks: Sequence) -> float:
    return abs(landmarks[CHIN].y - landmarks[FOREHEAD].y)


def pose_from_landmarks(landmarks: Sequence) -> Optional[Pose]:
    """
    Derive raw yaw/pitch from landmark positions.

    yaw   = horizontal nose offset from the eye midpoint / inter-eye distance
    pitch = vertical nose offset from the eye midpoint / face height

    Returns:
        Raw pose, or None for degenerate geometry (treated as tracking loss)
    """
    nose = landmarks[NOSE_TIP]
    left_eye = landmarks[LEFT_EYE]
    right_eye = landmarks[RIGHT_EYE]

    face_width = abs(right_eye.x - left_eye.x)
    height = face_height(landmarks)
    if face_width == 0 or height == 0:
        return None

    mid_eyes_x = (left_eye.x + right_eye.x) / 2
    mid_eyes_y = (left_eye.y + right_eye.y) / 2
    return Pose(
        (nose.x - mid_eyes_x) / face_width,
        (nose.y - mid_eyes_y) / height,
    )


def mouth_ratio(landmarks: Sequence) -> float:
    """Lip gap normalized by face height (0.0 for degenerate geometry)."""
    height = face_height(landmarks)
    if height == 0:
        return 0.0
    return abs(landmarks[LOWER_LIP].y - landmarks[UPPER_LIP].y) / height


class MouthGate:
    """
    Edge detector on mouth open/closed state.

    In "open" mode a closed->open edge fires; in "close" mode an
    open->closed edge fires. Each edge fires exactly once.
    """

    def __init__(self, mode: str = "close", threshold: float = MOUTH_OPEN_THRESHOLD):
        if mode not in ("open", "close"):
            raise ValueError(f"Invalid mouth trigger mode: {mode}")
        self.mode = mode
        self.threshold = threshold
        self.was_open = False

    def update(self, ratio: float, enabled: bool = True) -> bool:
        """Feed one mouth ratio; return True when the configured edge occurs."""
        is_open = ratio > self.threshold
        fired = False
        if enabled:
            if self.mode == "open":
                fired = is_open and not self.was_open
            else:
                fired = self.was_open and not is_open
        self.was_open = is_open
        return fired

    def reset(self):
        self.was_open = False
