"""
Immutable data models for headtone.

All persistent models are immutable dataclasses to support:
- Easy undo/redo via command pattern
- Atomic profile replacement on slot switch
- Plain-dict serialization for storage and exchange
"""
from dataclasses import dataclass, field, replace
from typing import Tuple, Optional, Dict, Any

from core.constants import (
    CENTER_ZONE_ID,
    DEFAULT_BASE_MIDI,
    DEFAULT_CENTER_OFFSET,
    DEFAULT_RADIUS,
    DEFAULT_SMOOTHING,
    DEFAULT_ZONE_NAMES,
    OCTAVE_SEMITONES,
    ZONE_IDS,
    midi_to_frequency,
)


@dataclass(frozen=True)
class Pose:
    """
    Head pose in yaw/pitch space.

    Used for raw samples, smoothed values and display (offset + scaled)
    values alike; which one a Pose holds depends on where it came from.
    """
    yaw: float
    pitch: float


@dataclass(frozen=True)
class RangeBounds:
    """Extents of the display pose observed during range detection."""
    min_yaw: float
    max_yaw: float
    min_pitch: float
    max_pitch: float

    @property
    def midpoint(self) -> Pose:
        return Pose((self.min_yaw + self.max_yaw) / 2, (self.min_pitch + self.max_pitch) / 2)

    @property
    def half_span(self) -> Pose:
        return Pose((self.max_yaw - self.min_yaw) / 2, (self.max_pitch - self.min_pitch) / 2)


@dataclass(frozen=True)
class CalibrationZone:
    """
    Circular trigger region in display pose space.

    Attributes:
        id: Zone id (1-9), 5 is the center/rest zone
        yaw: Zone center yaw (display space)
        pitch: Zone center pitch (display space)
        radius: Trigger radius in frame pixels
        name: Display name
        semitone_shift: Sharp/flat adjustment applied to base_midi
        base_midi: Base MIDI pitch, None for a silent zone
    """
    id: int
    yaw: float
    pitch: float
    radius: int = DEFAULT_RADIUS
    name: str = ""
    semitone_shift: int = 0
    base_midi: Optional[int] = None

    def __post_init__(self):
        """Validate zone values."""
        if self.id not in ZONE_IDS:
            raise ValueError(f"Zone id must be 1-9, got {self.id}")
        if self.radius <= 0:
            raise ValueError(f"Radius must be positive, got {self.radius}")
        if self.base_midi is not None and not 0 <= self.base_midi <= 127:
            raise ValueError(f"Base MIDI must be 0-127, got {self.base_midi}")

    @property
    def is_center(self) -> bool:
        return self.id == CENTER_ZONE_ID

    def midi_note(self, octave_up: bool = False) -> Optional[int]:
        """Pitch this zone plays, or None if it is silent."""
        if self.is_center or self.base_midi is None:
            return None
        midi = self.base_midi + self.semitone_shift
        if octave_up:
            midi += OCTAVE_SEMITONES
        return midi

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "yaw": self.yaw,
            "pitch": self.pitch,
            "name": self.name,
            "radius": self.radius,
            "semitoneShift": self.semitone_shift,
            "baseMidi": self.base_midi,
        }

    @classmethod
    def from_dict(cls, zone_id: int, data: Dict[str, Any]) -> "CalibrationZone":
        """Create CalibrationZone from dictionary."""
        return cls(
            id=zone_id,
            yaw=float(data["yaw"]),
            pitch=float(data["pitch"]),
            radius=int(data.get("radius", DEFAULT_RADIUS)),
            name=data.get("name", DEFAULT_ZONE_NAMES[zone_id]),
            semitone_shift=int(data.get("semitoneShift", 0)),
            base_midi=data.get("baseMidi", DEFAULT_BASE_MIDI[zone_id]),
        )


@dataclass(frozen=True)
class SoundSettings:
    """
    Lead-note settings stored with a profile.

    Attributes:
        return_to_center: Require a visit to the center zone between notes
        instrument: Lead instrument name
        volume: Lead volume (0.0-1.0)
        duration: Lead note length in seconds
    """
    return_to_center: bool = False
    instrument: str = "triangle"
    volume: float = 0.5
    duration: float = 1.5

    def __post_init__(self):
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"Volume must be 0.0-1.0, got {self.volume}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "returnToCenter": self.return_to_center,
            "instrument": self.instrument,
            "volume": self.volume,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoundSettings":
        return cls(
            return_to_center=bool(data.get("returnToCenter", False)),
            instrument=data.get("instrument", "triangle"),
            volume=float(data.get("volume", 0.5)),
            duration=float(data.get("duration", 1.5)),
        )


@dataclass(frozen=True)
class CalibrationProfile:
    """
    Complete calibration for one profile slot.

    Attributes:
        zones: Zone id -> CalibrationZone (missing id = uncalibrated)
        center_offset: (yaw, pitch) subtracted from the smoothed pose
        default_radius: Radius given to new zones
        smoothing_factor: EMA factor in (0, 1]
        sound_settings: Lead-note settings
        mouth_control_enabled: Whether the mouth gate toggles the octave
        mouth_trigger_mode: "open" or "close"
    """
    zones: Dict[int, CalibrationZone] = field(default_factory=dict)
    center_offset: Tuple[float, float] = DEFAULT_CENTER_OFFSET
    default_radius: int = DEFAULT_RADIUS
    smoothing_factor: float = DEFAULT_SMOOTHING
    sound_settings: SoundSettings = field(default_factory=SoundSettings)
    mouth_control_enabled: bool = True
    mouth_trigger_mode: str = "close"

    def __post_init__(self):
        """Validate profile."""
        if not 0.0 < self.smoothing_factor <= 1.0:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {self.smoothing_factor}")
        if self.mouth_trigger_mode not in ("open", "close"):
            raise ValueError(f"Invalid mouth_trigger_mode: {self.mouth_trigger_mode}")
        for zone_id, zone in self.zones.items():
            if zone_id != zone.id:
                raise ValueError(f"Zone keyed {zone_id} has id {zone.id}")

    def with_zone(self, zone: CalibrationZone) -> "CalibrationProfile":
        """Return a copy with zone inserted or replaced."""
        zones = dict(self.zones)
        zones[zone.id] = zone
        return replace(self, zones=zones)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored profile record."""
        return {
            "calibrationData": {str(k): z.to_dict() for k, z in sorted(self.zones.items())},
            "centerOffset": {"yaw": self.center_offset[0], "pitch": self.center_offset[1]},
            "defaultTriggerRadius": self.default_radius,
            "smoothingFactor": self.smoothing_factor,
            "soundSettings": self.sound_settings.to_dict(),
            "mouthControlEnabled": self.mouth_control_enabled,
            "mouthTriggerMode": self.mouth_trigger_mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalibrationProfile":
        """Create CalibrationProfile from a stored record."""
        zones = {
            int(k): CalibrationZone.from_dict(int(k), v)
            for k, v in data.get("calibrationData", {}).items()
        }
        center = data.get("centerOffset") or {}
        return cls(
            zones=zones,
            center_offset=(
                float(center.get("yaw", DEFAULT_CENTER_OFFSET[0])),
                float(center.get("pitch", DEFAULT_CENTER_OFFSET[1])),
            ),
            default_radius=int(data.get("defaultTriggerRadius") or DEFAULT_RADIUS),
            smoothing_factor=float(data.get("smoothingFactor") or DEFAULT_SMOOTHING),
            sound_settings=SoundSettings.from_dict(data.get("soundSettings") or {}),
            mouth_control_enabled=bool(data.get("mouthControlEnabled", True)),
            mouth_trigger_mode=data.get("mouthTriggerMode", "close"),
        )


@dataclass(frozen=True)
class TriggerState:
    """
    Arming state of the trigger classifier.

    armed only matters when return-to-center is enabled.
    """
    armed: bool = True
    last_zone_id: Optional[int] = None


@dataclass(frozen=True)
class NoteTrigger:
    """A zone that fired, resolved to a pitch."""
    zone_id: int
    midi: int
    name: str

    @property
    def frequency(self) -> float:
        return midi_to_frequency(self.midi)


@dataclass(frozen=True)
class ChordBar:
    """
    One bar of an accompaniment progression.

    Attributes:
        chord: Chord symbol (key into the chord table, "NC" = silence)
        beats: Bar length in beats
        measure_number: Measure number shown/announced for this bar
        hint: Melody position hint, e.g. "[4] ... [6][4]"
    """
    chord: str
    beats: int
    measure_number: Optional[int] = None
    hint: str = ""

    def __post_init__(self):
        if self.beats <= 0:
            raise ValueError(f"Beats must be positive, got {self.beats}")


@dataclass(frozen=True)
class LoopSection:
    """Contiguous playback window over a progression (inclusive bounds)."""
    start_bar_index: int
    end_bar_index: int

    def __post_init__(self):
        if not 0 <= self.start_bar_index <= self.end_bar_index:
            raise ValueError(
                f"Invalid loop window [{self.start_bar_index}, {self.end_bar_index}]"
            )


@dataclass(frozen=True)
class SongSection:
    """Named loop window, e.g. a phrase of a song."""
    name: str
    start: int
    end: int

    @property
    def loop(self) -> LoopSection:
        return LoopSection(self.start, self.end)


@dataclass(frozen=True)
class Progression:
    """
    Ordered sequence of bars plus optional named sections.

    Attributes:
        key: Progression identifier
        bars: Tuple of ChordBar (indexed from 0)
        sections: Named loop windows; empty means the whole progression loops
    """
    key: str
    bars: Tuple[ChordBar, ...]
    sections: Tuple[SongSection, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.bars:
            raise ValueError(f"Progression '{self.key}' has no bars")
        for section in self.sections:
            if section.end >= len(self.bars):
                raise ValueError(
                    f"Section '{section.name}' ends at bar {section.end}, "
                    f"progression '{self.key}' has {len(self.bars)} bars"
                )

    def loop_section(self, section_index: int) -> LoopSection:
        """Loop window for a section index, falling back to the full progression."""
        if self.sections and 0 <= section_index < len(self.sections):
            return self.sections[section_index].loop
        return LoopSection(0, len(self.bars) - 1)


@dataclass(frozen=True)
class SequencerState:
    """Snapshot of the accompaniment sequencer."""
    is_playing: bool
    current_bar_index: int
    loop_start: int
    loop_end: int
    bpm: float
    volume: float
    instrument: str
    is_arpeggio: bool
    metronome_enabled: bool
    narration_enabled: bool
    progression_key: Optional[str]
    section_index: int
