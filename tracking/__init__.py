"""
Head-pose tracking: landmark geometry, smoothing, calibration zones and
the trigger classifier.
"""
