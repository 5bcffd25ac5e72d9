"""
Tempo-locked accompaniment sequencer.

Plays a progression bar by bar against a loop window. Each bar schedules
its own successor (one pending bar timer at a time); audio is handed to
the output with precomputed start times, so timer jitter never moves
notes within a bar.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from audio.engine import AudioOutput
from audio.narration import Narrator
from audio.progressions import BUILTIN_PROGRESSIONS, build_progression
from core.constants import BPM_DEFAULT, BPM_MAX, BPM_MIN, clamp, midi_to_frequency
from core.errors import ConfigurationError
from core.events import BarChange, EventBus, MetronomeBeat, Notice, StateChange
from core.models import Progression, SequencerState, SongSection
from instruments.chords import ChordTable
from instruments.profiles import (
    ACCENT_FREQUENCY,
    BEAT_FREQUENCY,
    CLICK_DURATION,
    CLICK_PROFILE,
    DEFAULT_ACCOMPANIMENT,
    accompaniment_instrument,
)

# Arpeggio notes overlap their successor by this factor
ARPEGGIO_OVERLAP = 1.2

NO_PROGRESSION = "none"


class Sequencer:
    """
    Accompaniment sequencer, STOPPED or PLAYING.

    While playing, loop_start <= current_bar_index <= loop_end. Tempo,
    progression and section changes while playing stop and restart so the
    new values apply from a fresh bar.
    """

    def __init__(self, scheduler, audio: Optional[AudioOutput], events: EventBus,
                 narrator: Optional[Narrator] = None, bpm: float = BPM_DEFAULT,
                 volume: float = 0.3, instrument: str = DEFAULT_ACCOMPANIMENT,
                 chords: Optional[ChordTable] = None):
        """
        Args:
            scheduler: Timer source with call_later()/time() (LoopScheduler, ManualClock)
            audio: Output the chords and clicks are sent to (None = not attached)
            events: Bus for BarChange/MetronomeBeat/StateChange/Notice
            narrator: Spoken bar announcements (optional)
            bpm: Tempo, clamped to 40-180
            volume: Accompaniment volume, clamped to 0-1
            instrument: Accompaniment instrument name
            chords: Chord table (defaults to the built-in table)
        """
        accompaniment_instrument(instrument)
        self.scheduler = scheduler
        self.audio = audio
        self.events = events
        self.narrator = narrator
        self.chords = chords or ChordTable()
        self._progressions: Dict[str, Progression] = dict(BUILTIN_PROGRESSIONS)

        self.is_playing = False
        self.current_bar_index = 0
        self.loop_start = 0
        self.loop_end = 0
        self.bpm = clamp(bpm, BPM_MIN, BPM_MAX)
        self.volume = clamp(volume, 0.0, 1.0)
        self.instrument = instrument
        self.is_arpeggio = False
        self.metronome_enabled = False
        self.narration_enabled = False
        self.progression_key: Optional[str] = None
        self.section_index = 0

        self._bar_timer = None
        self._beat_timers: List = []

    # ---- transport ----------------------------------------------------------

    def start(self, progression_key: Optional[str] = None) -> bool:
        """
        Start playback from the loop start.

        Returns:
            False (and publishes a Notice) when no progression is selected,
            the key is unknown or no audio output is attached
        """
        key = progression_key or self.progression_key
        if not key or key == NO_PROGRESSION:
            self._notice("No progression selected", "warning")
            return False

        try:
            progression = self.progression(key)
            if self.audio is None:
                raise ConfigurationError("No audio output attached")
        except ConfigurationError as e:
            self._notice(str(e), "error")
            return False

        if self.is_playing:
            self._cancel_timers()

        self.progression_key = key
        loop = progression.loop_section(self.section_index)
        self.loop_start = loop.start_bar_index
        self.loop_end = loop.end_bar_index
        self.current_bar_index = self.loop_start
        self.is_playing = True

        print(f"[SEQUENCER] Playing '{key}' bars {self.loop_start}-{self.loop_end} "
              f"at {self.bpm} BPM")
        self._publish_state("playing")
        self._play_bar()
        return True

    def stop(self):
        """Cancel pending timers and stop; safe to call when stopped."""
        self._cancel_timers()
        if not self.is_playing:
            return
        self.is_playing = False
        if self.narrator is not None:
            self.narrator.cancel()
        print("[SEQUENCER] Stopped")
        self._publish_state("stopped")

    def toggle(self, progression_key: Optional[str] = None) -> bool:
        if self.is_playing:
            self.stop()
        else:
            self.start(progression_key)
        return self.is_playing

    def _restart(self):
        if self.is_playing:
            self.stop()
            self.start()

    # ---- live parameters --------------------------------------------------

    def set_bpm(self, bpm: float):
        self.bpm = clamp(bpm, BPM_MIN, BPM_MAX)
        self._restart()

    def set_volume(self, volume: float):
        self.volume = clamp(volume, 0.0, 1.0)

    def set_instrument(self, instrument: str):
        """
        Raises:
            ConfigurationError: If instrument is unknown (instrument unchanged)
        """
        accompaniment_instrument(instrument)
        self.instrument = instrument

    def set_arpeggio(self, enabled: bool):
        self.is_arpeggio = bool(enabled)

    def set_metronome(self, enabled: bool):
        self.metronome_enabled = bool(enabled)

    def set_narration(self, enabled: bool):
        self.narration_enabled = bool(enabled)
        if not enabled and self.narrator is not None:
            self.narrator.cancel()

    def set_voice_rate(self, rate: float):
        if self.narrator is not None:
            self.narrator.set_rate(rate)

    def select_progression(self, key: str) -> Optional[Tuple[SongSection, ...]]:
        """
        Select a progression (section 0); returns its sections, if any.

        An unknown key publishes a Notice and leaves selection and
        playback untouched.
        """
        try:
            self.progression(key)
        except ConfigurationError as e:
            self._notice(str(e), "error")
            return None
        self.progression_key = key
        self.section_index = 0
        self._restart()
        return self.sections(key)

    def select_section(self, index: int):
        self.section_index = int(index)
        self._restart()

    # ---- library ------------------------------------------------------------

    def progression_keys(self) -> Tuple[str, ...]:
        return tuple(self._progressions.keys())

    def progression(self, key: str) -> Progression:
        """
        Raises:
            ConfigurationError: If key is unknown
        """
        try:
            return self._progressions[key]
        except KeyError:
            raise ConfigurationError(f"Progression '{key}' not found") from None

    def sections(self, key: str) -> Optional[Tuple[SongSection, ...]]:
        progression = self._progressions.get(key)
        if progression is None or not progression.sections:
            return None
        return progression.sections

    def add_progression(self, key: str, bars: Iterable, sections: Optional[Iterable] = None):
        self._progressions[key] = build_progression(key, bars, sections)
        if key == self.progression_key:
            self._restart()

    def add_chord(self, name: str, notes: Iterable[int]):
        self.chords = self.chords.with_chord(name, notes)

    def state(self) -> SequencerState:
        return SequencerState(
            is_playing=self.is_playing,
            current_bar_index=self.current_bar_index,
            loop_start=self.loop_start,
            loop_end=self.loop_end,
            bpm=self.bpm,
            volume=self.volume,
            instrument=self.instrument,
            is_arpeggio=self.is_arpeggio,
            metronome_enabled=self.metronome_enabled,
            narration_enabled=self.narration_enabled,
            progression_key=self.progression_key,
            section_index=self.section_index,
        )

    @property
    def bar_timer(self):
        """The pending next-bar timer, or None."""
        return self._bar_timer

    # ---- bar playback -------------------------------------------------------

    def _play_bar(self):
        if not self.is_playing:
            return

        progression = self._progressions[self.progression_key]
        bar = progression.bars[self.current_bar_index]
        start_time = self.audio.current_time()
        duration = (60.0 / self.bpm) * bar.beats
        self._beat_timers = []

        self.events.publish(BarChange(
            bar_index=self.current_bar_index,
            chord=bar.chord,
            beats=bar.beats,
            hint=bar.hint,
            measure_number=bar.measure_number,
            duration=duration,
        ))

        if self.narration_enabled and self.narrator is not None and bar.hint:
            self.narrator.announce(bar.chord, bar.hint, bar.measure_number)

        notes = self.chords.notes(bar.chord)
        if notes:
            self._play_chord(notes, duration, start_time)

        if self.metronome_enabled:
            self._schedule_metronome(bar.beats, start_time)

        self._bar_timer = self.scheduler.call_later(duration, self._next_bar)

    def _next_bar(self):
        self._bar_timer = None
        next_index = self.current_bar_index + 1
        if next_index > self.loop_end:
            next_index = self.loop_start
        self.current_bar_index = next_index
        self._play_bar()

    def _play_chord(self, notes: Tuple[int, ...], duration: float, start_time: float):
        profile = accompaniment_instrument(self.instrument)
        envelope = profile.envelope.scaled(self.volume)
        step = duration / len(notes)
        for index, midi in enumerate(notes):
            if self.is_arpeggio:
                note_start = start_time + index * step
                note_duration = step * ARPEGGIO_OVERLAP
            else:
                note_start = start_time
                note_duration = duration
            self.audio.play(midi_to_frequency(midi), note_start, note_duration,
                            envelope, profile.timbre)

    def _schedule_metronome(self, beats: int, start_time: float):
        beat_duration = 60.0 / self.bpm
        for i in range(beats):
            frequency = ACCENT_FREQUENCY if i == 0 else BEAT_FREQUENCY
            self.audio.play(frequency, start_time + i * beat_duration, CLICK_DURATION,
                            CLICK_PROFILE.envelope, CLICK_PROFILE.timbre)

            beat = MetronomeBeat(beat_index=i, is_accent=(i == 0), total_beats=beats)
            if i == 0:
                self.events.publish(beat)
            else:
                self._beat_timers.append(
                    self.scheduler.call_later(i * beat_duration, self.events.publish, beat)
                )

    def _cancel_timers(self):
        if self._bar_timer is not None:
            self._bar_timer.cancel()
            self._bar_timer = None
        for handle in self._beat_timers:
            handle.cancel()
        self._beat_timers = []

    # ---- notifications ------------------------------------------------------

    def _publish_state(self, state: str):
        self.events.publish(StateChange(state=state, is_playing=self.is_playing,
                                        progression_key=self.progression_key))

    def _notice(self, message: str, level: str):
        print(f"[SEQUENCER] {message}")
        self.events.publish(Notice(message, level))
