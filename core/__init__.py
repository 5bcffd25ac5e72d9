"""
Core data structures and state management for headtone.

Modules:
- models: Immutable data structures (CalibrationZone, CalibrationProfile, ChordBar, etc.)
- events: Event bus and event payloads (bar change, metronome beat, notices)
- commands: Command pattern for undoable calibration edits
- persistence: Profile slot storage and calibration table exchange
- settings: Application settings file (~/.headtone/settings.json)
- constants: Musical and tracking constants (note names, default pitches, etc.)
- app: Application context wiring tracking, calibration and accompaniment
"""
