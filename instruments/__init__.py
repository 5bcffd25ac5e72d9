"""
Synthesis parameter set: instrument envelopes/timbres and the chord table.

Pure lookups consumed by the audio primitive; nothing here renders audio.
"""
