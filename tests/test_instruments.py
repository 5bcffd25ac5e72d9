"""
Tests for chord and instrument lookups.
"""
import pytest

from core.errors import ConfigurationError
from instruments.chords import NO_CHORD, ChordTable
from instruments.profiles import (
    ACCOMPANIMENT_INSTRUMENTS,
    Envelope,
    accompaniment_instrument,
    lead_instrument,
)


def test_chord_lookup():
    table = ChordTable()
    assert table.notes("C") == (48, 52, 55)
    assert table.notes("G7") == (55, 59, 62, 65)
    assert table.notes(NO_CHORD) == ()
    assert table.notes("unknown") == ()


def test_with_chord_returns_new_table():
    table = ChordTable()
    extended = table.with_chord("Csus2", [48, 50, 55])
    assert "Csus2" in extended
    assert "Csus2" not in table
    assert len(extended) == len(table) + 1


def test_with_chord_validates_range():
    with pytest.raises(ValueError):
        ChordTable().with_chord("bad", [200])


def test_instrument_lookup():
    assert set(ACCOMPANIMENT_INSTRUMENTS) == {"piano", "strings", "pluck", "soft_pad"}
    assert accompaniment_instrument("strings").envelope.filter_cutoff == 800.0
    assert lead_instrument("sine").envelope.attack_time == 0.02
    with pytest.raises(ConfigurationError):
        accompaniment_instrument("sine")
    with pytest.raises(ConfigurationError):
        lead_instrument("piano")


def test_envelope_validation():
    with pytest.raises(ValueError):
        Envelope(attack_time=-1, decay_slope=0, sustain_level=1, release_time=0, filter_cutoff=100)
    with pytest.raises(ValueError):
        Envelope(attack_time=0, decay_slope=0, sustain_level=2, release_time=0, filter_cutoff=100)


def test_envelope_scaled():
    env = accompaniment_instrument("piano").envelope.scaled(0.5)
    assert env.peak_gain == pytest.approx(0.2)
