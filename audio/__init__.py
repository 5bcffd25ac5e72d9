"""
Audio: timer layer, output contract, note rendering, accompaniment
sequencer, narration and the lead-note player.

The sounddevice output lives in audio.device and is imported only by
the realtime entry point.
"""
