"""
Offline note renderer.

Turns (frequency, duration, envelope, timbre) into a mono float32 buffer:
oscillator mix -> lowpass filter -> amplitude envelope.
"""
import numpy as np
from scipy.signal import butter, lfilter

from instruments.profiles import Envelope, EnvelopeCurve, Timbre, Waveform

DEFAULT_SAMPLE_RATE = 44100

# Exponential segments cannot reach zero; they stop at this fraction of peak
_EXP_FLOOR = 0.001


def generate_waveform(shape: Waveform, frequency: float, num_samples: int,
                      sample_rate: int) -> np.ndarray:
    """
    Generate one oscillator.

    Args:
        shape: Waveform
        frequency: Frequency in Hz
        num_samples: Number of samples to generate
        sample_rate: Sample rate in Hz
    """
    t = np.arange(num_samples) / sample_rate
    cycles = frequency * t

    if shape == Waveform.SINE:
        wave = np.sin(2 * np.pi * cycles)
    elif shape == Waveform.SQUARE:
        wave = np.sign(np.sin(2 * np.pi * cycles))
    elif shape == Waveform.SAWTOOTH:
        wave = 2.0 * (cycles % 1.0) - 1.0
    elif shape == Waveform.TRIANGLE:
        wave = 2.0 * np.abs(2.0 * (cycles % 1.0) - 1.0) - 1.0
    else:
        raise ValueError(f"Unknown waveform: {shape}")
    return wave.astype(np.float32)


def _exp_ramp(t: np.ndarray, start: float, end: float, length: float) -> np.ndarray:
    """Exponential ramp from start to end over length seconds (t from 0)."""
    if length <= 0:
        return np.full_like(t, end)
    return start * (end / start) ** np.clip(t / length, 0.0, 1.0)


def envelope_curve(envelope: Envelope, duration: float, sample_rate: int) -> np.ndarray:
    """
    Sample an envelope over a note of the given duration.

    The note is silent (or at the exponential floor) at duration; nothing
    rings past it.
    """
    num_samples = max(1, int(round(duration * sample_rate)))
    t = np.arange(num_samples) / sample_rate
    peak = envelope.peak_gain
    if peak <= 0:
        return np.zeros(num_samples, dtype=np.float32)

    sustain = peak * envelope.sustain_level
    attack = min(envelope.attack_time, duration)
    decay_end = min(attack + envelope.decay_slope, duration)
    release_start = max(decay_end, duration - envelope.release_time)

    if envelope.curve == EnvelopeCurve.ADSR:
        curve = np.interp(
            t,
            [0.0, attack, decay_end, release_start, duration],
            [0.0, peak, sustain, sustain, 0.0],
        )
        return curve.astype(np.float32)

    floor = peak * _EXP_FLOOR
    curve = np.empty(num_samples, dtype=np.float64)
    rising = t < attack
    curve[rising] = peak * t[rising] / attack if attack > 0 else peak

    if envelope.curve == EnvelopeCurve.PLUCK:
        falling = ~rising
        curve[falling] = _exp_ramp(t[falling] - attack, peak, max(sustain, floor),
                                   duration - attack)
        return curve.astype(np.float32)

    # EXPONENTIAL: decay to sustain, hold, exponential release to the floor
    sustain = max(sustain, floor)
    decaying = (t >= attack) & (t < decay_end)
    holding = (t >= decay_end) & (t < release_start)
    releasing = t >= release_start
    curve[decaying] = _exp_ramp(t[decaying] - attack, peak, sustain, decay_end - attack)
    curve[holding] = sustain
    curve[releasing] = _exp_ramp(t[releasing] - release_start, sustain, floor,
                                 duration - release_start)
    return curve.astype(np.float32)


def lowpass(buffer: np.ndarray, cutoff: float, sample_rate: int) -> np.ndarray:
    """First-order Butterworth lowpass."""
    nyquist = 0.5 * sample_rate
    normalized_cutoff = float(np.clip(cutoff / nyquist, 0.01, 0.99))
    b, a = butter(1, normalized_cutoff, btype='low')
    return lfilter(b, a, buffer)


def render_note(frequency: float, duration: float, envelope: Envelope, timbre: Timbre,
                sample_rate: int = DEFAULT_SAMPLE_RATE) -> np.ndarray:
    """
    Render one note.

    Returns:
        Mono float32 buffer of round(duration * sample_rate) samples
    """
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive, got {frequency}")
    if duration <= 0:
        raise ValueError(f"Duration must be positive, got {duration}")

    num_samples = max(1, int(round(duration * sample_rate)))
    mix = np.zeros(num_samples, dtype=np.float32)
    for partial in timbre.oscillators():
        freq = frequency * partial.ratio * 2.0 ** (partial.detune_cents / 1200.0)
        mix += partial.gain * generate_waveform(partial.shape, freq, num_samples, sample_rate)

    filtered = lowpass(mix, envelope.filter_cutoff, sample_rate)
    output = filtered * envelope_curve(envelope, duration, sample_rate)
    return output.astype(np.float32)
