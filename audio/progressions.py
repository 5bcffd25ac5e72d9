"""
Built-in chord progressions and song sections.
"""
from typing import Dict, Iterable, Optional, Sequence, Union

from core.models import ChordBar, Progression, SongSection

BarSpec = Union[ChordBar, Sequence]
SectionSpec = Union[SongSection, Sequence]


def build_progression(key: str, bars: Iterable[BarSpec],
                      sections: Optional[Iterable[SectionSpec]] = None) -> Progression:
    """
    Build a Progression from ChordBars or (chord, beats[, hint[, measure]]) tuples.

    Bars without a measure number are numbered from 1 in order.

    Raises:
        ValueError: If a bar or section is invalid
    """
    chord_bars = []
    for index, bar in enumerate(bars):
        if not isinstance(bar, ChordBar):
            chord, beats, *rest = bar
            hint = rest[0] if len(rest) > 0 else ""
            measure = rest[1] if len(rest) > 1 else None
            bar = ChordBar(chord=chord, beats=int(beats), measure_number=measure, hint=hint)
        if bar.measure_number is None:
            bar = ChordBar(bar.chord, bar.beats, index + 1, bar.hint)
        chord_bars.append(bar)

    song_sections = []
    for section in sections or ():
        if not isinstance(section, SongSection):
            name, start, end = section
            section = SongSection(name, int(start), int(end))
        song_sections.append(section)

    return Progression(key=key, bars=tuple(chord_bars), sections=tuple(song_sections))


BUILTIN_PROGRESSIONS: Dict[str, Progression] = {
    p.key: p for p in (
        build_progression("metronome_4", [("NC", 4, "Metronome (4/4)", 1)]),
        build_progression("metronome_3", [("NC", 3, "Metronome (3/4)", 1)]),
        # F major, 3/4
        build_progression(
            "amazing_grace",
            [
                ("F", 3, "[1] (Intro)", 0),
                # Phrase 1
                ("F", 3, "[4] ... [6][4]", 1),
                ("C", 3, "[6] ... [5]", 2),
                ("Bb", 3, "[4] ... [2]", 3),
                ("F", 3, "[1]", 4),
                ("F", 3, "[1] ... [1]", 5),
                # Phrase 2
                ("F", 3, "[4] ... [6][4]", 6),
                ("C", 3, "[6] ... [5]", 7),
                ("F", 3, "[9](High 1)", 8),
                ("Dm", 3, "[6] ... [9]", 9),
                # Phrase 3
                ("F", 3, "[9] ... [6][4]", 10),
                ("Bb", 3, "[4] ... [2]", 11),
                ("F", 3, "[1] ... [2]", 12),
                ("C", 3, "[1] ... [1]", 13),
                # Phrase 4
                ("F", 3, "[4] ... [6][4]", 14),
                ("C", 3, "[6] ... [5]", 15),
                ("F", 3, "[4]", 16),
                ("F", 3, "(End)", 17),
            ],
            sections=[
                ("Full Song", 0, 17),
                ("Intro", 0, 0),
                ("Phrase 1", 1, 5),
                ("Phrase 2", 6, 9),
                ("Phrase 3", 10, 13),
                ("Phrase 4", 14, 17),
            ],
        ),
        build_progression("pop_c", [("C", 4), ("G", 4), ("Am", 4), ("F", 4)]),
        build_progression("canon", [
            ("C", 4), ("G", 4), ("Am", 4), ("Em", 4),
            ("F", 4), ("C", 4), ("F", 4), ("G", 4),
        ]),
        build_progression("basic_1451", [("C", 4), ("F", 4), ("G", 4), ("C", 4)]),
        build_progression("blues_12", [
            ("C7", 4), ("C7", 4), ("C7", 4), ("C7", 4),
            ("F7", 4), ("F7", 4), ("C7", 4), ("C7", 4),
            ("G7", 4), ("F7", 4), ("C7", 4), ("G7", 4),
        ]),
        build_progression("jazz_251", [("Dm7", 4), ("G7", 4), ("Cmaj7", 8)]),
    )
}
