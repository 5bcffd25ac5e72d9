"""
Zone classification and the return-to-center arming state machine.
"""
import math
from typing import Dict, Optional, Tuple

from core.constants import CENTER_ZONE_ID, DEFAULT_FRAME_SIZE
from core.models import CalibrationZone, Pose, TriggerState


class ZoneClassifier:
    """
    Maps a display pose to at most one zone id.

    Distances are measured in frame pixels, the space zone radii are
    expressed in: a display value v maps to (v + 0.5) * frame_dimension.
    """

    def __init__(self, frame_size: Tuple[int, int] = DEFAULT_FRAME_SIZE):
        self.frame_size = frame_size

    def to_frame(self, pose: Pose) -> Tuple[float, float]:
        width, height = self.frame_size
        return (pose.yaw + 0.5) * width, (pose.pitch + 0.5) * height

    def distance(self, pose: Pose, zone: CalibrationZone) -> float:
        px, py = self.to_frame(pose)
        zx, zy = self.to_frame(Pose(zone.yaw, zone.pitch))
        return math.hypot(px - zx, py - zy)

    def classify(self, pose: Pose, zones: Dict[int, CalibrationZone]) -> Optional[int]:
        """
        Return the id of the nearest zone containing pose, or None.

        A zone contains the pose when distance < radius. Equal distances
        resolve to the lower id.
        """
        candidates = []
        for zone_id, zone in zones.items():
            d = self.distance(pose, zone)
            if d < zone.radius:
                candidates.append((d, zone_id))
        if not candidates:
            return None
        return min(candidates)[1]


class TriggerStateMachine:
    """
    Edge-triggered note firing with optional return-to-center arming.

    - The center zone re-arms and never fires.
    - Entering a different non-center zone is an edge. With
      return_to_center off every edge fires; with it on an edge fires only
      while armed, then disarms.
    - Staying in (or re-reporting) the same zone never re-fires.
    - Frames without a zone leave the state untouched.
    """

    def __init__(self):
        self.state = TriggerState()

    @property
    def armed(self) -> bool:
        return self.state.armed

    def update(self, zone_id: Optional[int], return_to_center: bool) -> bool:
        """
        Advance with this frame's classified zone.

        Returns:
            True if zone_id should fire a note
        """
        if zone_id is None:
            return False

        if zone_id == CENTER_ZONE_ID:
            self.state = TriggerState(armed=True, last_zone_id=CENTER_ZONE_ID)
            return False

        if zone_id == self.state.last_zone_id:
            return False

        fire = self.state.armed or not return_to_center
        armed = self.state.armed
        if fire and return_to_center:
            armed = False
        self.state = TriggerState(armed=armed, last_zone_id=zone_id)
        return fire

    def reset(self):
        """Back to armed with no previous zone."""
        self.state = TriggerState()
