"""
Musical and tracking constants and utilities.

MIDI note names, solfege, default zone pitches, tempo limits, etc.
"""
import math

# MIDI note number to name mapping
MIDI_NOTE_NAMES = [
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"
]

SOLFEGE_NAMES = [
    "Do", "Do#", "Re", "Re#", "Mi", "Fa", "Fa#", "Sol", "Sol#", "La", "La#", "Si"
]

A4_FREQUENCY = 440.0

# Accompaniment tempo range
BPM_MIN = 40
BPM_MAX = 180
BPM_DEFAULT = 100

# Zone layout: ids 1-9 on a 3x3 grid, 5 is the center/rest zone
ZONE_IDS = tuple(range(1, 10))
CENTER_ZONE_ID = 5

# Default pitch per zone (C major scale, center is silent)
DEFAULT_BASE_MIDI = {
    1: 60, 2: 62, 3: 64, 4: 65, 5: None, 6: 67, 7: 69, 8: 71, 9: 72
}

DEFAULT_ZONE_NAMES = {
    1: "Do", 2: "Re", 3: "Mi", 4: "Fa", 5: "Center", 6: "So", 7: "La", 8: "Si", 9: "High Do"
}

# Trigger radius limits (frame pixels)
RADIUS_MIN = 10
RADIUS_MAX = 100
DEFAULT_RADIUS = 40

# Frame the zone radii are expressed in
DEFAULT_FRAME_SIZE = (640, 480)

DEFAULT_SMOOTHING = 0.15
DEFAULT_CENTER_OFFSET = (0.0, 0.45)

# Mouth opening / face height ratio above which the mouth counts as open
MOUTH_OPEN_THRESHOLD = 0.08

# Lead octave toggle
OCTAVE_SEMITONES = 12


def clamp(value, low, high):
    """Limit value to the closed range [low, high]."""
    return min(max(value, low), high)


def midi_note_to_name(note_number: int) -> str:
    """
    Convert MIDI note number to name with octave.

    Args:
        note_number: MIDI note (0-127)

    Returns:
        Note name (e.g., "C4", "A#3")

    Example:
        >>> midi_note_to_name(60)
        'C4'
        >>> midi_note_to_name(69)
        'A4'
    """
    if not 0 <= note_number <= 127:
        raise ValueError(f"MIDI note must be 0-127, got {note_number}")
    octave = (note_number // 12) - 1
    note_name = MIDI_NOTE_NAMES[note_number % 12]
    return f"{note_name}{octave}"


def midi_note_to_solfege(note_number: int) -> str:
    """Movable-do syllable for a MIDI note (octave ignored)."""
    return SOLFEGE_NAMES[note_number % 12]


def midi_to_frequency(note_number: float) -> float:
    """
    Convert MIDI note number to frequency in Hz.

    Args:
        note_number: MIDI note (0-127)

    Returns:
        Frequency in Hz

    Example:
        >>> midi_to_frequency(69)  # A4
        440.0
    """
    if not 0 <= note_number <= 127:
        raise ValueError(f"MIDI note must be 0-127, got {note_number}")

    # Formula: frequency = 440 * 2^((note - 69) / 12)
    return A4_FREQUENCY * math.pow(2.0, (note_number - 69) / 12.0)


def frequency_to_midi(frequency: float) -> int:
    """
    Convert frequency in Hz to nearest MIDI note number.

    Example:
        >>> frequency_to_midi(440.0)  # A4
        69
    """
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive, got {frequency}")

    midi_note = round(69 + 12 * math.log2(frequency / A4_FREQUENCY))
    return max(0, min(127, midi_note))
