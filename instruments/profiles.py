"""
Instrument profiles: envelope shape plus timbre per instrument name.

Accompaniment instruments: piano, strings, pluck, soft_pad.
Lead instruments: sine, triangle, square, sawtooth.
Metronome clicks use their own short square-wave profile.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Tuple

from core.errors import ConfigurationError


class Waveform(Enum):
    """Oscillator shapes."""
    SINE = "sine"
    TRIANGLE = "triangle"
    SQUARE = "square"
    SAWTOOTH = "sawtooth"


class EnvelopeCurve(Enum):
    """How the envelope moves between its stages."""
    ADSR = "adsr"                # linear attack/decay, hold sustain, linear release
    EXPONENTIAL = "exponential"  # linear attack, exponential decay to sustain, release to silence
    PLUCK = "pluck"              # linear attack, exponential decay across the whole note


@dataclass(frozen=True)
class Envelope:
    """
    Amplitude envelope.

    Attributes:
        attack_time: Seconds from silence to peak
        decay_slope: Seconds from peak to sustain level
        sustain_level: Sustain as a fraction of peak_gain
        release_time: Seconds from sustain to silence at the note end
        filter_cutoff: Lowpass cutoff in Hz
        peak_gain: Peak amplitude before volume scaling
        curve: Stage interpolation
    """
    attack_time: float
    decay_slope: float
    sustain_level: float
    release_time: float
    filter_cutoff: float
    peak_gain: float = 1.0
    curve: EnvelopeCurve = EnvelopeCurve.ADSR

    def __post_init__(self):
        if self.attack_time < 0 or self.decay_slope < 0 or self.release_time < 0:
            raise ValueError("Envelope times must be non-negative")
        if not 0.0 <= self.sustain_level <= 1.0:
            raise ValueError(f"Sustain level must be 0.0-1.0, got {self.sustain_level}")
        if self.filter_cutoff <= 0:
            raise ValueError(f"Filter cutoff must be positive, got {self.filter_cutoff}")

    def scaled(self, volume: float) -> "Envelope":
        """Same envelope with peak gain multiplied by volume."""
        return replace(self, peak_gain=self.peak_gain * volume)


@dataclass(frozen=True)
class Partial:
    """One oscillator of a timbre, relative to the note frequency."""
    ratio: float = 1.0
    gain: float = 1.0
    shape: Waveform = Waveform.SINE
    detune_cents: float = 0.0


@dataclass(frozen=True)
class Timbre:
    """Oscillator mix; a timbre with no partials is a single oscillator of shape."""
    shape: Waveform
    partials: Tuple[Partial, ...] = field(default_factory=tuple)

    def oscillators(self) -> Tuple[Partial, ...]:
        return self.partials or (Partial(shape=self.shape),)


@dataclass(frozen=True)
class InstrumentProfile:
    name: str
    envelope: Envelope
    timbre: Timbre


ACCOMPANIMENT_INSTRUMENTS: Dict[str, InstrumentProfile] = {
    # Struck: near-instant attack, exponential fall to a low sustain,
    # three detuned partials through a bright filter
    "piano": InstrumentProfile(
        "piano",
        Envelope(attack_time=0.001, decay_slope=0.1, sustain_level=0.3 / 0.4,
                 release_time=0.2, filter_cutoff=4000.0, peak_gain=0.4,
                 curve=EnvelopeCurve.EXPONENTIAL),
        Timbre(Waveform.SINE, (
            Partial(ratio=1.0, gain=0.5, shape=Waveform.SINE),
            Partial(ratio=1.0, gain=0.3, shape=Waveform.TRIANGLE, detune_cents=2.0),
            Partial(ratio=2.0, gain=0.15, shape=Waveform.SINE),
        )),
    ),
    "strings": InstrumentProfile(
        "strings",
        Envelope(attack_time=0.3, decay_slope=0.0, sustain_level=1.0,
                 release_time=0.3, filter_cutoff=800.0, peak_gain=0.25),
        Timbre(Waveform.SAWTOOTH),
    ),
    "pluck": InstrumentProfile(
        "pluck",
        Envelope(attack_time=0.01, decay_slope=0.0, sustain_level=0.01 / 0.25,
                 release_time=0.2, filter_cutoff=2500.0, peak_gain=0.25,
                 curve=EnvelopeCurve.PLUCK),
        Timbre(Waveform.SQUARE),
    ),
    "soft_pad": InstrumentProfile(
        "soft_pad",
        Envelope(attack_time=0.5, decay_slope=0.0, sustain_level=1.0,
                 release_time=0.5, filter_cutoff=1000.0, peak_gain=0.25),
        Timbre(Waveform.TRIANGLE),
    ),
}

# Lead oscillators are unfiltered; the cutoff sits above the audible range
LEAD_INSTRUMENTS: Dict[str, InstrumentProfile] = {
    "sine": InstrumentProfile(
        "sine",
        Envelope(attack_time=0.02, decay_slope=0.3, sustain_level=0.7,
                 release_time=0.1, filter_cutoff=20000.0),
        Timbre(Waveform.SINE),
    ),
    "triangle": InstrumentProfile(
        "triangle",
        Envelope(attack_time=0.05, decay_slope=0.2, sustain_level=0.6,
                 release_time=0.15, filter_cutoff=20000.0),
        Timbre(Waveform.TRIANGLE),
    ),
    "square": InstrumentProfile(
        "square",
        Envelope(attack_time=0.01, decay_slope=0.1, sustain_level=0.5,
                 release_time=0.05, filter_cutoff=20000.0),
        Timbre(Waveform.SQUARE),
    ),
    "sawtooth": InstrumentProfile(
        "sawtooth",
        Envelope(attack_time=0.03, decay_slope=0.25, sustain_level=0.65,
                 release_time=0.12, filter_cutoff=20000.0),
        Timbre(Waveform.SAWTOOTH),
    ),
}

DEFAULT_ACCOMPANIMENT = "soft_pad"
DEFAULT_LEAD = "triangle"

# Metronome click
CLICK_DURATION = 0.05
ACCENT_FREQUENCY = 1000.0
BEAT_FREQUENCY = 800.0
CLICK_PROFILE = InstrumentProfile(
    "click",
    Envelope(attack_time=0.005, decay_slope=0.0, sustain_level=0.001 / 0.3,
             release_time=0.0, filter_cutoff=20000.0, peak_gain=0.3,
             curve=EnvelopeCurve.PLUCK),
    Timbre(Waveform.SQUARE),
)


def accompaniment_instrument(name: str) -> InstrumentProfile:
    """
    Look up an accompaniment instrument.

    Raises:
        ConfigurationError: If name is not an accompaniment instrument
    """
    try:
        return ACCOMPANIMENT_INSTRUMENTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown accompaniment instrument '{name}'. "
            f"Available: {', '.join(ACCOMPANIMENT_INSTRUMENTS)}"
        ) from None


def lead_instrument(name: str) -> InstrumentProfile:
    """
    Look up a lead instrument.

    Raises:
        ConfigurationError: If name is not a lead instrument
    """
    try:
        return LEAD_INSTRUMENTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown lead instrument '{name}'. Available: {', '.join(LEAD_INSTRUMENTS)}"
        ) from None
