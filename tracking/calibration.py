"""
Calibration zone model and range detection.

Zones live in display pose space (smoothed pose minus center offset,
times sensitivity). All edits replace the immutable CalibrationProfile
held by the model.
"""
from dataclasses import replace
from typing import List, Optional, Tuple

from core.constants import (
    DEFAULT_BASE_MIDI,
    DEFAULT_ZONE_NAMES,
    RADIUS_MAX,
    RADIUS_MIN,
    clamp,
)
from core.models import CalibrationProfile, CalibrationZone, Pose, RangeBounds, SoundSettings
from core import persistence

# Auto-generated grid: (id, yaw sign, pitch sign, name).
# Yaw is mirrored (left of the frame is +yaw), pitch grows downwards.
GRID_LAYOUT = (
    (1, 1, -1, "Do (1)"),
    (2, 0, -1, "Re (2)"),
    (3, -1, -1, "Mi (3)"),
    (4, 1, 0, "Fa (4)"),
    (5, 0, 0, "Center (5)"),
    (6, -1, 0, "So (6)"),
    (7, 1, 1, "La (7)"),
    (8, 0, 1, "Si (8)"),
    (9, -1, 1, "High Do"),
)


class CalibrationModel:
    """
    Owns the active CalibrationProfile and every edit made to it.

    Position/radius/pitch edits on a zone that has not been recorded are
    no-ops; callers are expected to offer edits on recorded zones only.
    """

    def __init__(self, profile: Optional[CalibrationProfile] = None):
        self.profile = profile or CalibrationProfile()

    @property
    def zones(self):
        return self.profile.zones

    def get_zone(self, zone_id: int) -> Optional[CalibrationZone]:
        return self.profile.zones.get(zone_id)

    # ---- zone edits -------------------------------------------------------

    def record_zone(self, zone_id: int, yaw: float, pitch: float, name: Optional[str] = None):
        """
        Insert or overwrite a zone at a display position.

        An existing zone keeps its radius, semitone shift and base pitch.
        """
        existing = self.profile.zones.get(zone_id)
        if name is None:
            name = existing.name if existing else DEFAULT_ZONE_NAMES.get(zone_id, str(zone_id))
        if existing is not None:
            zone = replace(existing, yaw=yaw, pitch=pitch, name=name)
        else:
            zone = CalibrationZone(
                id=zone_id,
                yaw=yaw,
                pitch=pitch,
                radius=self.profile.default_radius,
                name=name,
                semitone_shift=0,
                base_midi=DEFAULT_BASE_MIDI[zone_id],
            )
        self.profile = self.profile.with_zone(zone)

    def update_zone_position(self, zone_id: int, yaw: float, pitch: float):
        self._edit_zone(zone_id, yaw=yaw, pitch=pitch)

    def update_zone_radius(self, zone_id: int, radius: float):
        self._edit_zone(zone_id, radius=int(clamp(round(radius), RADIUS_MIN, RADIUS_MAX)))

    def set_semitone(self, zone_id: int, shift: int):
        """Set the sharp (+1), natural (0) or flat (-1) adjustment."""
        if shift not in (-1, 0, 1):
            raise ValueError(f"Semitone shift must be -1, 0 or 1, got {shift}")
        self._edit_zone(zone_id, semitone_shift=shift)

    def set_base_midi(self, zone_id: int, base_midi: Optional[int]):
        """Assign a base pitch, or None to silence the zone."""
        self._edit_zone(zone_id, base_midi=base_midi)

    def _edit_zone(self, zone_id: int, **changes):
        zone = self.profile.zones.get(zone_id)
        if zone is None:
            return
        self.profile = self.profile.with_zone(replace(zone, **changes))

    # ---- profile-level settings -------------------------------------------

    def set_center(self, raw_yaw: float, raw_pitch: float) -> bool:
        """
        Use a smoothed pose as the new center offset.

        A (0, 0) pose means tracking never started and is ignored.
        """
        if raw_yaw == 0 and raw_pitch == 0:
            return False
        self.profile = replace(self.profile, center_offset=(raw_yaw, raw_pitch))
        return True

    def set_default_radius(self, radius: float):
        """Set the global radius and apply it to every zone."""
        radius = int(clamp(round(radius), RADIUS_MIN, RADIUS_MAX))
        zones = {k: replace(z, radius=radius) for k, z in self.profile.zones.items()}
        self.profile = replace(self.profile, default_radius=radius, zones=zones)

    def set_smoothing_factor(self, value: float):
        self.profile = replace(self.profile, smoothing_factor=value)

    def set_sound_settings(self, **changes):
        """Update lead-note settings (return_to_center, instrument, volume, duration)."""
        settings: SoundSettings = replace(self.profile.sound_settings, **changes)
        self.profile = replace(self.profile, sound_settings=settings)

    def set_mouth_control(self, enabled: Optional[bool] = None, mode: Optional[str] = None):
        changes = {}
        if enabled is not None:
            changes["mouth_control_enabled"] = enabled
        if mode is not None:
            changes["mouth_trigger_mode"] = mode
        self.profile = replace(self.profile, **changes)

    def reset(self):
        """Clear every zone of the active profile."""
        self.profile = replace(self.profile, zones={})

    # ---- range auto-calibration -------------------------------------------

    def auto_generate_from_range(self, bounds: RangeBounds,
                                 sensitivity: Tuple[float, float] = (1.0, 1.0)):
        """
        Re-center on the observed extents and lay out a 3x3 grid over them.

        The midpoint of the extents becomes the center offset correction
        (converted back from display space by the sensitivity scale). The
        grid spans +/- half the extents around the new center, replacing
        all nine zones at once.
        """
        drift = bounds.midpoint
        span = bounds.half_span
        offset_yaw, offset_pitch = self.profile.center_offset
        center_offset = (
            offset_yaw + drift.yaw / sensitivity[0],
            offset_pitch + drift.pitch / sensitivity[1],
        )

        radius = self.profile.default_radius
        zones = {}
        for zone_id, yaw_sign, pitch_sign, name in GRID_LAYOUT:
            zones[zone_id] = CalibrationZone(
                id=zone_id,
                yaw=yaw_sign * span.yaw,
                pitch=pitch_sign * span.pitch,
                radius=radius,
                name=name,
                semitone_shift=0,
                base_midi=DEFAULT_BASE_MIDI[zone_id],
            )
        self.profile = replace(self.profile, zones=zones, center_offset=center_offset)

    # ---- tabular exchange -------------------------------------------------

    def export_table(self, slot: int = 1) -> str:
        return persistence.export_table(self.profile, slot)

    def import_table(self, text: str):
        """Replace the profile from exchange text; unparsable rows are skipped."""
        self.profile = persistence.import_table(text, self.profile)

    def calibrated_count(self) -> int:
        return len(self.profile.zones)


class RangeDetector:
    """
    Tracks display-pose extents while the user sweeps their head range.

    begin() seeds the extents with the current pose; update() widens them
    and appends to the trace.
    """

    def __init__(self):
        self.active = False
        self.trace: List[Pose] = []
        self._bounds: Optional[RangeBounds] = None

    def begin(self, pose: Pose):
        self.active = True
        self.trace = []
        self._bounds = RangeBounds(pose.yaw, pose.yaw, pose.pitch, pose.pitch)

    def update(self, pose: Pose):
        if not self.active or self._bounds is None:
            return
        b = self._bounds
        self._bounds = RangeBounds(
            min(b.min_yaw, pose.yaw),
            max(b.max_yaw, pose.yaw),
            min(b.min_pitch, pose.pitch),
            max(b.max_pitch, pose.pitch),
        )
        self.trace.append(pose)

    def finish(self) -> Optional[RangeBounds]:
        """Stop detecting and return the observed extents (None if never begun)."""
        self.active = False
        return self._bounds

    def bounds(self) -> Optional[RangeBounds]:
        return self._bounds

    def cancel(self):
        self.active = False
        self.trace = []
        self._bounds = None
