"""
Test doubles and landmark builders.
"""
from audio.narration import Speaker
from tracking.face_pose import Landmark


class FakeSpeaker(Speaker):
    """Records speak/cancel calls in order."""

    def __init__(self):
        self.calls = []
        self.closed = False

    def speak(self, text, rate=1.0):
        self.calls.append(("speak", text, rate))

    def cancel(self):
        self.calls.append(("cancel",))

    def close(self):
        self.closed = True

    @property
    def spoken(self):
        return [c[1] for c in self.calls if c[0] == "speak"]


def make_landmarks(nose=(0.5, 0.5), left_eye=(0.4, 0.4), right_eye=(0.6, 0.4),
                   forehead_y=0.2, chin_y=0.8, lip_gap=0.0):
    """468 landmarks at the origin with the indices the geometry reads set."""
    points = [Landmark(0.0, 0.0) for _ in range(468)]
    points[1] = Landmark(*nose)
    points[33] = Landmark(*left_eye)
    points[263] = Landmark(*right_eye)
    points[10] = Landmark(0.5, forehead_y)
    points[152] = Landmark(0.5, chin_y)
    points[13] = Landmark(0.5, 0.6)
    points[14] = Landmark(0.5, 0.6 + lip_gap)
    return points
