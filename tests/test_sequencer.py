"""
Tests for the accompaniment sequencer on a virtual clock.
"""
import pytest

from audio.narration import Narrator
from audio.sequencer import Sequencer
from core.constants import midi_to_frequency
from core.errors import ConfigurationError
from core.events import BarChange, MetronomeBeat, Notice, StateChange
from instruments.profiles import ACCENT_FREQUENCY, BEAT_FREQUENCY
from tests.helpers import FakeSpeaker


@pytest.fixture
def sequencer(clock, audio, events):
    return Sequencer(clock, audio, events, bpm=100)


def collect(events, event_type):
    received = []
    events.subscribe(event_type, received.append)
    return received


def test_pop_c_bar_changes_every_2_4_seconds(clock, events, sequencer):
    bars = collect(events, BarChange)
    times = []
    events.subscribe(BarChange, lambda e: times.append(clock.time()))

    assert sequencer.start("pop_c")
    clock.advance(2.4 * 8 - 0.01)

    assert [b.chord for b in bars] == ["C", "G", "Am", "F"] * 2
    assert times == pytest.approx([2.4 * i for i in range(8)])
    assert all(b.duration == pytest.approx(2.4) for b in bars)


def test_bar_wraps_to_loop_start(clock, events, sequencer):
    bars = collect(events, BarChange)
    sequencer.start("pop_c")
    clock.advance(2.4 * 3 + 0.1)
    assert [b.bar_index for b in bars] == [0, 1, 2, 3]
    clock.advance(2.4)
    assert bars[-1].bar_index == 0
    assert sequencer.loop_start <= sequencer.current_bar_index <= sequencer.loop_end


def test_section_loop_window(clock, events, sequencer):
    bars = collect(events, BarChange)
    sections = sequencer.select_progression("amazing_grace")
    assert [s.name for s in sections][:3] == ["Full Song", "Intro", "Phrase 1"]

    sequencer.select_section(3)  # Phrase 2, bars 6-9
    sequencer.start()
    clock.advance(60 / 100 * 3 * 5 + 0.1)
    assert [b.bar_index for b in bars] == [6, 7, 8, 9, 6, 7]


def test_tempo_change_leaves_one_pending_bar_timer(clock, sequencer):
    sequencer.start("pop_c")
    clock.advance(1.0)
    sequencer.set_bpm(120)
    sequencer.set_bpm(140)

    pending = clock.pending()
    assert len(pending) == 1
    assert pending[0] is sequencer.bar_timer
    assert pending[0].when == pytest.approx(1.0 + 60 / 140 * 4)


def test_tempo_clamped(sequencer):
    sequencer.set_bpm(500)
    assert sequencer.bpm == 180
    sequencer.set_bpm(10)
    assert sequencer.bpm == 40


def test_stop_cancels_everything_and_is_idempotent(clock, events, sequencer):
    states = collect(events, StateChange)
    sequencer.set_metronome(True)
    sequencer.start("pop_c")
    sequencer.stop()
    sequencer.stop()

    assert clock.pending() == []
    assert sequencer.bar_timer is None
    assert [s.state for s in states] == ["playing", "stopped"]
    assert not sequencer.state().is_playing


def test_block_chord_notes(audio, sequencer):
    sequencer.start("pop_c")
    notes = audio.notes
    assert [n.frequency for n in notes] == [midi_to_frequency(m) for m in (48, 52, 55)]
    assert all(n.start_time == 0.0 and n.duration == pytest.approx(2.4) for n in notes)


def test_arpeggio_timing(audio, sequencer):
    sequencer.set_arpeggio(True)
    sequencer.start("pop_c")
    step = 2.4 / 3
    assert [n.start_time for n in audio.notes] == pytest.approx([0.0, step, 2 * step])
    assert all(n.duration == pytest.approx(step * 1.2) for n in audio.notes)


def test_volume_scales_chord_envelope(audio, sequencer):
    sequencer.set_volume(0.5)
    sequencer.start("pop_c")
    assert audio.notes[0].envelope.peak_gain == pytest.approx(0.25 * 0.5)


def test_metronome_clicks_and_beats(clock, audio, events, sequencer):
    order = []
    events.subscribe(BarChange, lambda e: order.append(("bar", e.bar_index)))
    events.subscribe(MetronomeBeat, lambda e: order.append(("beat", e.beat_index)))
    sequencer.set_metronome(True)
    sequencer.start("metronome_4")

    clicks = [n for n in audio.notes if n.frequency in (ACCENT_FREQUENCY, BEAT_FREQUENCY)]
    assert [n.frequency for n in clicks] == [ACCENT_FREQUENCY] + [BEAT_FREQUENCY] * 3
    assert [n.start_time for n in clicks] == pytest.approx([0.0, 0.6, 1.2, 1.8])

    clock.advance(2.4 + 0.01)
    assert order == [
        ("bar", 0), ("beat", 0), ("beat", 1), ("beat", 2), ("beat", 3),
        ("bar", 0), ("beat", 0),
    ]


def test_narration_follows_bar_change(clock, events):
    order = []
    speaker = FakeSpeaker()
    speaker.calls = order
    narrator = Narrator(speaker)
    events.subscribe(BarChange, lambda e: order.append("bar"))
    sequencer = Sequencer(clock, None, events, narrator=narrator)
    sequencer.audio = _NoteCounter(clock, order)
    sequencer.set_narration(True)
    sequencer.select_progression("amazing_grace")
    sequencer.select_section(2)
    sequencer.start()

    assert order[0] == "bar"
    assert order[1] == ("cancel",)
    assert order[2][0] == "speak"
    assert order[3] == "note"
    assert speaker.spoken == ["Measure 1, F chord, play 4, then 6 and 4"]


class _NoteCounter:
    def __init__(self, clock, order):
        self.clock = clock
        self.order = order

    def play(self, *args):
        self.order.append("note")
        return 0

    def stop(self, handle):
        pass

    def current_time(self):
        return self.clock.time()


@pytest.mark.parametrize("key", [None, "none", "nope"])
def test_start_failures_publish_notice(events, sequencer, key):
    notices = collect(events, Notice)
    assert sequencer.start(key) is False
    assert not sequencer.is_playing
    assert len(notices) == 1


def test_start_without_audio_fails(clock, events):
    notices = collect(events, Notice)
    sequencer = Sequencer(clock, None, events)
    assert sequencer.start("pop_c") is False
    assert clock.pending() == []
    assert notices[0].level == "error"


def test_unknown_instrument_rejected(sequencer):
    with pytest.raises(ConfigurationError):
        sequencer.set_instrument("kazoo")
    assert sequencer.instrument == "soft_pad"


def test_custom_progression_and_chord(events, audio, sequencer):
    sequencer.add_chord("Csus4", (48, 53, 55))
    sequencer.add_progression("sus", [("Csus4", 2, "[1]")])
    sequencer.start("sus")
    assert [n.frequency for n in audio.notes] == [midi_to_frequency(m) for m in (48, 53, 55)]
    assert "sus" in sequencer.progression_keys()


def test_unknown_chord_is_silent(clock, audio, events, sequencer):
    bars = collect(events, BarChange)
    sequencer.add_progression("odd", [("H#9", 4)])
    sequencer.start("odd")
    assert audio.notes == []
    assert bars[0].chord == "H#9"
    assert sequencer.bar_timer is not None


def test_unknown_progression_keeps_playback(clock, events, sequencer):
    notices = collect(events, Notice)
    states = collect(events, StateChange)
    sequencer.start("pop_c")
    clock.advance(2.5)

    assert sequencer.select_progression("nope") is None
    assert sequencer.is_playing
    assert sequencer.progression_key == "pop_c"
    assert sequencer.current_bar_index == 1
    assert len(clock.pending()) == 1
    assert len(states) == 1
    assert notices[-1] == Notice("Progression 'nope' not found", "error")


def test_unknown_progression_keeps_section_when_stopped(sequencer):
    sequencer.select_progression("amazing_grace")
    sequencer.select_section(2)
    sequencer.select_progression("nope")
    assert sequencer.progression_key == "amazing_grace"
    assert sequencer.section_index == 2


def test_replacing_playing_progression_restarts_loop(clock, events, sequencer):
    bars = collect(events, BarChange)
    sequencer.start("canon")
    clock.advance(2.4 * 5 + 0.1)
    assert sequencer.current_bar_index == 5

    sequencer.add_progression("canon", [("C", 4), ("G", 4)])
    assert (sequencer.loop_start, sequencer.loop_end) == (0, 1)
    assert sequencer.current_bar_index == 0

    clock.advance(2.4 * 2 + 0.1)
    assert [b.bar_index for b in bars[6:]] == [0, 1, 0]
    assert [b.chord for b in bars[6:]] == ["C", "G", "C"]
    assert sequencer.is_playing


def test_replacing_other_progression_does_not_restart(clock, events, sequencer):
    sequencer.start("pop_c")
    clock.advance(2.5)
    sequencer.add_progression("canon", [("C", 4)])
    assert sequencer.current_bar_index == 1
    assert len(clock.pending()) == 1
