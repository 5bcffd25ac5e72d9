"""
Chord symbol to MIDI pitch table.
"""
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

NO_CHORD = "NC"

# Voiced around C3-B3 so the accompaniment sits below the lead
DEFAULT_CHORDS: Dict[str, Tuple[int, ...]] = {
    # Major triads
    "C": (48, 52, 55),
    "D": (50, 54, 57),
    "E": (52, 56, 59),
    "F": (53, 57, 60),
    "G": (55, 59, 62),
    "A": (57, 61, 64),
    "B": (59, 63, 66),
    # Minor triads
    "Cm": (48, 51, 55),
    "Dm": (50, 53, 57),
    "Em": (52, 55, 59),
    "Fm": (53, 56, 60),
    "Gm": (55, 58, 62),
    "Am": (57, 60, 64),
    "Bm": (59, 62, 66),
    # Dominant sevenths
    "C7": (48, 52, 55, 58),
    "D7": (50, 54, 57, 60),
    "E7": (52, 56, 59, 62),
    "F7": (53, 57, 60, 63),
    "G7": (55, 59, 62, 65),
    "A7": (57, 61, 64, 67),
    # Minor sevenths
    "Cm7": (48, 51, 55, 58),
    "Dm7": (50, 53, 57, 60),
    "Em7": (52, 55, 59, 62),
    "Am7": (57, 60, 64, 67),
    # Major sevenths
    "Cmaj7": (48, 52, 55, 59),
    "Fmaj7": (53, 57, 60, 64),
    "Gmaj7": (55, 59, 62, 66),
    # Others
    "Bb": (50, 53, 58),  # first inversion
    "Eb": (51, 55, 58),
    NO_CHORD: (),
}


class ChordTable:
    """
    Immutable chord symbol -> ordered pitch tuple mapping.

    with_chord() returns a new table; the original is never modified.
    """

    def __init__(self, chords: Optional[Mapping[str, Iterable[int]]] = None):
        source = DEFAULT_CHORDS if chords is None else chords
        self._chords = MappingProxyType({name: tuple(notes) for name, notes in source.items()})

    def __contains__(self, name: str) -> bool:
        return name in self._chords

    def __len__(self) -> int:
        return len(self._chords)

    def notes(self, name: str) -> Tuple[int, ...]:
        """Pitches for a chord symbol; unknown symbols are silent."""
        return self._chords.get(name, ())

    def names(self) -> Tuple[str, ...]:
        return tuple(self._chords.keys())

    def with_chord(self, name: str, notes: Iterable[int]) -> "ChordTable":
        notes = tuple(int(n) for n in notes)
        for n in notes:
            if not 0 <= n <= 127:
                raise ValueError(f"MIDI note must be 0-127, got {n}")
        chords = dict(self._chords)
        chords[name] = notes
        return ChordTable(chords)
