"""
Tests for the lead-note player.
"""
import pytest

from audio.engine import STOP_RAMP_SECONDS
from audio.lead import LeadPlayer
from core.models import NoteTrigger, SoundSettings
from instruments.profiles import LEAD_INSTRUMENTS


@pytest.fixture
def lead(audio):
    return LeadPlayer(audio)


def trigger(zone_id=1, midi=60):
    return NoteTrigger(zone_id=zone_id, midi=midi, name="C4")


def test_play_uses_profile_sound_settings(audio, lead):
    settings = SoundSettings(instrument="square", volume=0.4, duration=0.8)
    lead.play(trigger(), settings)

    note = audio.notes[0]
    assert note.duration == 0.8
    assert note.timbre == LEAD_INSTRUMENTS["square"].timbre
    assert note.envelope.peak_gain == pytest.approx(0.4)
    assert note.note_name == "C4"


def test_unknown_instrument_falls_back_to_triangle(audio, lead):
    lead.play(trigger(), SoundSettings(instrument="theremin"))
    assert audio.notes[0].timbre == LEAD_INSTRUMENTS["triangle"].timbre


def test_sounding_zone_not_retriggered(clock, audio, lead):
    settings = SoundSettings(duration=1.0)
    assert lead.play(trigger(), settings) is not None
    assert lead.play(trigger(), settings) is None
    assert lead.play(trigger(zone_id=2, midi=62), settings) is not None
    assert lead.playing_count() == 2

    clock.advance(1.0)
    assert not lead.is_playing(1)
    assert lead.play(trigger(), settings) is not None


def test_forced_retrigger_stops_previous(clock, audio, lead):
    settings = SoundSettings(duration=1.0)
    lead.play(trigger(), settings)
    clock.advance(0.2)
    lead.play(trigger(), settings, force=True)

    first, second = audio.notes
    assert first.stopped_at == 0.2
    assert first.end_time == pytest.approx(0.2 + STOP_RAMP_SECONDS)
    assert second.start_time == 0.2


def test_stop_all(audio, lead):
    lead.play(trigger(1), SoundSettings())
    lead.play(trigger(2, 62), SoundSettings())
    lead.stop_all()
    assert lead.playing_count() == 0
    assert all(n.stopped_at is not None for n in audio.notes)
