"""
sounddevice-backed AudioOutput.

Notes are pre-rendered with numpy/scipy when play() is called and mixed
in PortAudio's callback thread. The voice list is shared with that
thread and guarded by a lock.
"""
import threading
from typing import List, Optional

import numpy as np
import sounddevice as sd

from audio.engine import AudioOutput, STOP_RAMP_SECONDS
from audio.voice import DEFAULT_SAMPLE_RATE, render_note


class _Voice:
    """A rendered note waiting for, or in, playback."""

    def __init__(self, handle: int, start_frame: int, audio: np.ndarray):
        self.handle = handle
        self.start_frame = start_frame
        self.audio = audio


class SoundDeviceOutput(AudioOutput):
    """
    Realtime output stream.

    current_time() counts frames delivered to the device, so start times
    handed to play() are on the same clock the callback mixes against.
    """

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE, buffer_size: int = 512,
                 device: Optional[str] = None):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.device = None if device in (None, "Default") else device

        self.playback_lock = threading.Lock()
        self._voices: List[_Voice] = []
        self._frame = 0
        self._next_handle = 1
        self._stream: Optional[sd.OutputStream] = None

    def start(self):
        """Open the output stream."""
        if self._stream is not None:
            return
        self._stream = sd.OutputStream(samplerate=self.sample_rate, channels=2,
                                       blocksize=self.buffer_size, dtype='float32',
                                       latency='low', device=self.device,
                                       callback=self._audio_callback)
        self._stream.start()
        print(f"[AUDIO] Output stream started ({self.sample_rate} Hz, {self.buffer_size} frames)")

    def close(self):
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        with self.playback_lock:
            self._voices.clear()
        print("[AUDIO] Output stream closed")

    def current_time(self) -> float:
        with self.playback_lock:
            return self._frame / self.sample_rate

    def play(self, frequency, start_time, duration, envelope, timbre) -> int:
        audio = render_note(frequency, duration, envelope, timbre, self.sample_rate)
        with self.playback_lock:
            handle = self._next_handle
            self._next_handle += 1
            start_frame = max(self._frame, int(round(start_time * self.sample_rate)))
            self._voices.append(_Voice(handle, start_frame, audio))
        return handle

    def stop(self, handle: int):
        """Fade the voice out from the current frame instead of cutting it."""
        ramp_frames = int(STOP_RAMP_SECONDS * self.sample_rate)
        with self.playback_lock:
            for voice in self._voices:
                if voice.handle != handle:
                    continue
                offset = max(0, self._frame - voice.start_frame)
                end = min(len(voice.audio), offset + ramp_frames)
                tail = voice.audio[offset:end] * np.linspace(1.0, 0.0, end - offset,
                                                             dtype=np.float32)
                voice.audio = np.concatenate([voice.audio[:offset], tail])
                break

    def _audio_callback(self, outdata, frames, time_info, status):
        """Mix every voice overlapping this block (PortAudio thread)."""
        if status:
            print(f"[AUDIO] {status}")

        mix = np.zeros(frames, dtype=np.float32)
        with self.playback_lock:
            block_start = self._frame
            block_end = block_start + frames
            finished = []
            for i, voice in enumerate(self._voices):
                voice_end = voice.start_frame + len(voice.audio)
                if voice_end <= block_start:
                    finished.append(i)
                    continue
                if voice.start_frame >= block_end:
                    continue
                src_start = max(0, block_start - voice.start_frame)
                dst_start = max(0, voice.start_frame - block_start)
                count = min(len(voice.audio) - src_start, frames - dst_start)
                mix[dst_start:dst_start + count] += voice.audio[src_start:src_start + count]

            for i in reversed(finished):
                self._voices.pop(i)
            self._frame = block_end

        # Normalize to prevent clipping
        max_val = np.max(np.abs(mix))
        if max_val > 0.8:
            mix = mix / max_val * 0.8

        outdata[:, 0] = mix
        outdata[:, 1] = mix
