"""
Audio primitive contract.

The core only ever talks to an AudioOutput:
    play(frequency, start_time, duration, envelope, timbre) -> handle
    stop(handle)      ramps to silence, never cuts
    current_time()    clock that start_time values are expressed in

Calls are fire-and-forget with precomputed start times.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.constants import frequency_to_midi, midi_note_to_name
from instruments.profiles import Envelope, Timbre

# Fade length used by stop()
STOP_RAMP_SECONDS = 0.05


class AudioOutput(ABC):
    """Base class for anything that can realize a note."""

    @abstractmethod
    def play(self, frequency: float, start_time: float, duration: float,
             envelope: Envelope, timbre: Timbre) -> int:
        """
        Schedule one note.

        Args:
            frequency: Pitch in Hz
            start_time: Start, in current_time() seconds
            duration: Note length in seconds
            envelope: Amplitude envelope (volume already applied)
            timbre: Oscillator mix

        Returns:
            Handle for stop()
        """
        raise NotImplementedError()

    @abstractmethod
    def stop(self, handle: int):
        """Ramp a note to silence over STOP_RAMP_SECONDS."""
        raise NotImplementedError()

    @abstractmethod
    def current_time(self) -> float:
        raise NotImplementedError()

    def close(self):
        """Release output resources."""


@dataclass
class PlayedNote:
    """One note handed to a RecordingOutput."""
    handle: int
    frequency: float
    start_time: float
    duration: float
    envelope: Envelope
    timbre: Timbre
    stopped_at: Optional[float] = None

    @property
    def end_time(self) -> float:
        if self.stopped_at is not None:
            return min(self.start_time + self.duration, self.stopped_at + STOP_RAMP_SECONDS)
        return self.start_time + self.duration

    @property
    def note_name(self) -> str:
        return midi_note_to_name(frequency_to_midi(self.frequency))


class RecordingOutput(AudioOutput):
    """
    Output that records notes instead of sounding them.

    Used for offline simulation and tests; time comes from a scheduler
    clock so start times line up with timer callbacks.
    """

    def __init__(self, clock):
        """
        Args:
            clock: Object with time() (ManualClock, LoopScheduler)
        """
        self.clock = clock
        self.notes: List[PlayedNote] = []
        self._by_handle: Dict[int, PlayedNote] = {}
        self._next_handle = 1

    def play(self, frequency, start_time, duration, envelope, timbre) -> int:
        handle = self._next_handle
        self._next_handle += 1
        note = PlayedNote(handle, frequency, start_time, duration, envelope, timbre)
        self.notes.append(note)
        self._by_handle[handle] = note
        return handle

    def stop(self, handle: int):
        note = self._by_handle.get(handle)
        if note is not None and note.stopped_at is None:
            note.stopped_at = self.current_time()

    def current_time(self) -> float:
        return self.clock.time()

    def clear(self):
        self.notes.clear()
        self._by_handle.clear()
