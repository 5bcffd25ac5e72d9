"""
Spoken bar announcements.

Each bar with a hint is announced once as measure number, chord and
melody position, e.g. "Measure 1, F chord, play 4, then 6 and 4".
A pending announcement is always cancelled before a new one starts.
"""
import queue
import re
import threading
from abc import ABC, abstractmethod
from typing import Optional

import pyttsx3

from instruments.chords import NO_CHORD

_CHORD_RE = re.compile(r"^([A-G])([b#]?)(.*)$")
_POSITION_RE = re.compile(r"\[(\d+)\]")

_ACCIDENTALS = {"": "", "b": " flat", "#": " sharp"}
_QUALITIES = {
    "": "",
    "m": " minor",
    "7": " seven",
    "m7": " minor seven",
    "maj7": " major seven",
}

# pyttsx3 rate (words per minute) at voice rate 1.0
BASE_WORDS_PER_MINUTE = 160


def speakable_chord(chord: str) -> str:
    """
    Spell a chord symbol for speech.

    Example:
        >>> speakable_chord("Bb")
        'B flat'
        >>> speakable_chord("Am7")
        'A minor seven'
    """
    match = _CHORD_RE.match(chord)
    if not match:
        return chord
    root, accidental, quality = match.groups()
    if quality not in _QUALITIES:
        return chord
    return f"{root}{_ACCIDENTALS[accidental]}{_QUALITIES[quality]}"


def speakable_hint(hint: str) -> str:
    """
    Turn a melody hint into words.

    "[4] ... [6][4]" -> "play 4, then 6 and 4"; "(Intro)" -> "intro";
    "(End)" -> "end". Unrecognized hints are not spoken.
    """
    positions = _POSITION_RE.findall(hint)
    if positions:
        text = f"play {positions[0]}"
        rest = positions[1:]
        if len(rest) == 1:
            text += f", then {rest[0]}"
        elif rest:
            text += f", then {', '.join(rest[:-1])} and {rest[-1]}"
        return text
    if "Intro" in hint:
        return "intro"
    if "End" in hint:
        return "end"
    return ""


def narration_text(chord: str, hint: str, measure_number: Optional[int] = None) -> str:
    """Full announcement for one bar."""
    if not _POSITION_RE.search(hint) and "Metronome" in hint:
        return "metronome"

    parts = []
    if measure_number is not None:
        parts.append(f"Measure {measure_number}")
    if chord and chord != NO_CHORD:
        parts.append(f"{speakable_chord(chord)} chord")
    hint_words = speakable_hint(hint)
    if hint_words:
        parts.append(hint_words)
    return ", ".join(parts)


class Speaker(ABC):
    """Text-to-speech sink."""

    @abstractmethod
    def speak(self, text: str, rate: float = 1.0):
        raise NotImplementedError()

    @abstractmethod
    def cancel(self):
        """Drop anything queued and stop the current utterance."""
        raise NotImplementedError()

    def close(self):
        pass


class Pyttsx3Speaker(Speaker):
    """
    pyttsx3 speaker running on a background thread.

    runAndWait() blocks, so utterances go through a queue to a worker
    thread that owns the engine. The queue holds at most one entry.
    """

    def __init__(self, words_per_minute: int = BASE_WORDS_PER_MINUTE):
        self.words_per_minute = words_per_minute
        self._queue: "queue.Queue" = queue.Queue()
        self._engine = None
        self._engine_ready = threading.Event()
        self._thread = threading.Thread(target=self._voice_worker, daemon=True)
        self._thread.start()

    def _voice_worker(self):
        self._engine = pyttsx3.init()
        self._engine_ready.set()
        while True:
            item = self._queue.get()
            if item is None:
                break
            text, rate = item
            self._engine.setProperty("rate", int(self.words_per_minute * rate))
            self._engine.say(text)
            self._engine.runAndWait()

    def speak(self, text: str, rate: float = 1.0):
        self._queue.put((text, rate))

    def cancel(self):
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        if self._engine_ready.is_set():
            self._engine.stop()

    def close(self):
        self.cancel()
        self._queue.put(None)
        self._thread.join(timeout=2.0)


class Narrator:
    """Owns the single narration channel."""

    def __init__(self, speaker: Speaker, rate: float = 1.0):
        self.speaker = speaker
        self.rate = rate
        self.last_text: Optional[str] = None

    def set_rate(self, rate: float):
        """Voice rate multiplier (0.5-2.0)."""
        self.rate = min(max(float(rate), 0.5), 2.0)

    def announce(self, chord: str, hint: str, measure_number: Optional[int] = None) -> Optional[str]:
        """Cancel any pending announcement and speak this bar's."""
        if not hint:
            return None
        text = narration_text(chord, hint, measure_number)
        self.speaker.cancel()
        if text:
            self.speaker.speak(text, self.rate)
        self.last_text = text
        return text

    def cancel(self):
        self.speaker.cancel()
