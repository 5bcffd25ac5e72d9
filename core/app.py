"""
Application context.

Holds every live component (tracking, calibration, trigger state, lead
player, sequencer, narration) and wires them together. Construction
builds the graph; start() loads the active profile; shutdown() stops
playback and releases outputs.
"""
import copy
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from audio.engine import AudioOutput
from audio.lead import LeadPlayer
from audio.narration import Narrator, Speaker
from audio.sequencer import Sequencer
from core.commands import (
    AutoCalibrateCommand,
    Command,
    CommandHistory,
    ImportTableCommand,
    RecordZoneCommand,
    SetCenterCommand,
)
from core.constants import midi_note_to_name
from core.errors import ConfigurationError, PersistenceError
from core.events import EventBus, Notice, NoteTriggered, OctaveToggled
from core.models import CalibrationProfile, NoteTrigger, Pose
from core.persistence import ProfileStore
from core.settings import DEFAULT_SETTINGS
from instruments.profiles import lead_instrument
from tracking.calibration import CalibrationModel, RangeDetector
from tracking.classifier import TriggerStateMachine, ZoneClassifier
from tracking.face_pose import MouthGate, mouth_ratio, pose_from_landmarks
from tracking.smoothing import PoseSmoother


class AppContext:
    """Explicit owner of all runtime state."""

    def __init__(self, scheduler, audio: Optional[AudioOutput] = None,
                 speaker: Optional[Speaker] = None, store: Optional[ProfileStore] = None,
                 settings: Optional[Dict[str, Dict[str, Any]]] = None):
        """
        Args:
            scheduler: Timer source (LoopScheduler for realtime, ManualClock offline)
            audio: Audio output shared by lead notes and accompaniment
            speaker: Narration speaker (None disables narration)
            store: Profile slot storage
            settings: Settings as returned by load_settings()
        """
        self.settings = settings or copy.deepcopy(DEFAULT_SETTINGS)
        tracking = self.settings["tracking"]
        accompaniment = self.settings["accompaniment"]
        storage = self.settings["storage"]

        self.scheduler = scheduler
        self.audio = audio
        self.speaker = speaker
        self.events = EventBus()
        if store is None:
            store = ProfileStore(Path(storage["profile_path"]) if storage["profile_path"] else None)
        self.store = store
        self.active_slot = int(storage["active_profile"])

        self.calibration = CalibrationModel()
        self.history = CommandHistory(self.calibration)
        self.smoother = PoseSmoother(
            self.calibration.profile.smoothing_factor,
            (tracking["sensitivity_yaw"], tracking["sensitivity_pitch"]),
        )
        self.classifier = ZoneClassifier((tracking["frame_width"], tracking["frame_height"]))
        self.triggers = TriggerStateMachine()
        self.mouth = MouthGate(self.calibration.profile.mouth_trigger_mode)
        self.range_detector = RangeDetector()
        self.lead = LeadPlayer(audio) if audio is not None else None

        self.narrator = Narrator(speaker, accompaniment["voice_rate"]) if speaker is not None else None
        self.sequencer = Sequencer(
            scheduler, audio, self.events, self.narrator,
            bpm=accompaniment["bpm"],
            volume=accompaniment["volume"],
            instrument=accompaniment["instrument"],
        )
        self.sequencer.set_arpeggio(accompaniment["arpeggio"])
        self.sequencer.set_metronome(accompaniment["metronome"])
        self.sequencer.set_narration(accompaniment["narration"] and self.narrator is not None)
        if accompaniment["progression"] != "none":
            self.sequencer.select_progression(accompaniment["progression"])

        self.sound_enabled = True
        self.octave_up = False
        self.display_pose = Pose(0.0, 0.0)
        self.current_zone_id: Optional[int] = None

    @property
    def profile(self) -> CalibrationProfile:
        return self.calibration.profile

    # ---- lifecycle ----------------------------------------------------------

    def start(self):
        """Load the active profile and arm the trigger classifier."""
        self.load_profile(self.active_slot)
        self.triggers.reset()

    def shutdown(self):
        self.sequencer.stop()
        if self.lead is not None:
            self.lead.stop_all()
        if self.speaker is not None:
            self.speaker.close()
        if self.audio is not None:
            self.audio.close()
        print("[APP] Shut down")

    # ---- per-frame pipeline -------------------------------------------------

    def process_frame(self, landmarks: Optional[Sequence]) -> Optional[NoteTrigger]:
        """
        Run one pose-source frame through the pipeline.

        None (no face) and degenerate geometry are tracking loss: nothing
        fires and all state is held.
        """
        if landmarks is None:
            return None
        raw = pose_from_landmarks(landmarks)
        if raw is None:
            return None

        profile = self.profile
        self.mouth.mode = profile.mouth_trigger_mode
        if self.mouth.update(mouth_ratio(landmarks), profile.mouth_control_enabled):
            self.toggle_octave()

        return self.process_pose(raw.yaw, raw.pitch)

    def process_pose(self, raw_yaw: float, raw_pitch: float) -> Optional[NoteTrigger]:
        """Smooth, normalize, classify and fire for one raw pose sample."""
        profile = self.profile
        self.smoother.smoothing_factor = profile.smoothing_factor
        smoothed = self.smoother.update(raw_yaw, raw_pitch)
        display = self.smoother.normalize(smoothed, profile.center_offset)
        self.display_pose = display

        if self.range_detector.active:
            self.range_detector.update(display)

        zone_id = self.classifier.classify(display, profile.zones)
        self.current_zone_id = zone_id
        if not self.triggers.update(zone_id, profile.sound_settings.return_to_center):
            return None

        midi = profile.zones[zone_id].midi_note(self.octave_up)
        if midi is None:
            return None
        trigger = NoteTrigger(zone_id=zone_id, midi=midi, name=midi_note_to_name(midi))
        self.events.publish(NoteTriggered(trigger))
        if self.sound_enabled and self.lead is not None:
            self.lead.play(trigger, profile.sound_settings)
        return trigger

    def toggle_octave(self):
        self.octave_up = not self.octave_up
        self.events.publish(OctaveToggled(self.octave_up))

    def set_sound_enabled(self, enabled: bool):
        self.sound_enabled = bool(enabled)
        if not enabled and self.lead is not None:
            self.lead.stop_all()

    # ---- calibration edits --------------------------------------------------

    def execute(self, command: Command) -> bool:
        """
        Run an undoable calibration edit and save the profile.

        Returns:
            False if the edit failed on malformed input (reported as a Notice)
        """
        try:
            self.history.execute(command)
        except PersistenceError as e:
            self._notice(str(e), "error")
            return False
        self.save_profile()
        return True

    def undo(self) -> bool:
        if not self.history.undo():
            return False
        self.save_profile()
        return True

    def redo(self) -> bool:
        if not self.history.redo():
            return False
        self.save_profile()
        return True

    def record_zone(self, zone_id: int, name: Optional[str] = None) -> bool:
        """Record zone_id at the current display pose."""
        return self.execute(RecordZoneCommand(zone_id, self.display_pose.yaw,
                                              self.display_pose.pitch, name))

    def set_center(self) -> bool:
        """Use the current smoothed pose as the center offset."""
        smoothed = self.smoother.smoothed
        if smoothed.yaw == 0 and smoothed.pitch == 0:
            return False
        return self.execute(SetCenterCommand(smoothed.yaw, smoothed.pitch))

    def begin_range_detection(self):
        self.range_detector.begin(self.display_pose)

    def finish_range_detection(self) -> bool:
        """Stop range detection and auto-calibrate from the swept extents."""
        bounds = self.range_detector.finish()
        if bounds is None:
            return False
        return self.execute(AutoCalibrateCommand(bounds, self.smoother.sensitivity))

    def update_sound_settings(self, **changes):
        """
        Change lead-note settings on the active profile.

        Raises:
            ConfigurationError: If instrument is not a lead instrument
        """
        if "instrument" in changes:
            lead_instrument(changes["instrument"])
        self.calibration.set_sound_settings(**changes)
        self.save_profile()

    # ---- profiles -----------------------------------------------------------

    def load_profile(self, slot: int) -> bool:
        """
        Make slot the active profile.

        An empty slot loads defaults. On a read failure the current
        profile stays active and a Notice is published, as it is for a
        slot outside 1-3.
        """
        try:
            profile = self.store.load(slot)
        except (ConfigurationError, PersistenceError) as e:
            self._notice(str(e), "error")
            return False

        self.active_slot = slot
        if profile is None:
            profile = CalibrationProfile()
            self._notice(f"Profile {slot} is empty", "info")
        else:
            print(f"[PROFILE] Loaded profile {slot} ({len(profile.zones)} zones)")
        self.calibration.profile = profile
        self.history.clear()
        self._reset_tracking_state()
        return True

    def switch_profile(self, slot: int) -> bool:
        return self.load_profile(slot)

    def save_profile(self) -> bool:
        try:
            self.store.save(self.active_slot, self.profile)
        except PersistenceError as e:
            self._notice(str(e), "error")
            return False
        return True

    def reset_profile(self) -> bool:
        """Clear the active slot and its zones."""
        try:
            self.store.delete(self.active_slot)
        except PersistenceError as e:
            self._notice(str(e), "error")
            return False
        self.calibration.reset()
        self.history.clear()
        self._reset_tracking_state()
        self._notice(f"Profile {self.active_slot} reset", "info")
        return True

    def export_table(self) -> str:
        return self.calibration.export_table(self.active_slot)

    def import_table(self, text: str) -> bool:
        if not self.execute(ImportTableCommand(text)):
            return False
        self._notice(f"Imported {len(self.profile.zones)} zones", "info")
        return True

    def _reset_tracking_state(self):
        self.triggers.reset()
        self.mouth.reset()
        self.range_detector.cancel()
        self.current_zone_id = None
        if self.lead is not None:
            self.lead.stop_all()

    def _notice(self, message: str, level: str):
        print(f"[PROFILE] {message}")
        self.events.publish(Notice(message, level))
