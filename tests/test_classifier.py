"""
Tests for zone classification and return-to-center arming.
"""
import pytest

from core.models import CalibrationZone, Pose
from tracking.classifier import TriggerStateMachine, ZoneClassifier


def zone(zone_id, yaw, pitch, radius=40):
    return CalibrationZone(id=zone_id, yaw=yaw, pitch=pitch, radius=radius, base_midi=60)


@pytest.fixture
def zones():
    return {
        1: zone(1, -0.3, -0.3),
        4: zone(4, 0.0, 0.0),
        6: zone(6, 0.3, 0.0),
    }


def test_distance_in_frame_pixels():
    classifier = ZoneClassifier((640, 480))
    assert classifier.to_frame(Pose(0.0, 0.0)) == (320.0, 240.0)
    assert classifier.distance(Pose(0.1, 0.0), zone(4, 0.0, 0.0)) == pytest.approx(64.0)
    assert classifier.distance(Pose(0.0, 0.1), zone(4, 0.0, 0.0)) == pytest.approx(48.0)


def test_point_inside_single_zone(zones):
    classifier = ZoneClassifier()
    assert classifier.classify(Pose(0.05, 0.0), zones) == 4
    assert classifier.classify(Pose(0.32, 0.02), zones) == 6
    assert classifier.classify(Pose(-0.3, -0.3), zones) == 1


def test_point_outside_every_zone(zones):
    classifier = ZoneClassifier()
    assert classifier.classify(Pose(0.15, 0.3), zones) is None
    assert classifier.classify(Pose(0.0, 0.0), {}) is None


def test_radius_boundary_is_exclusive():
    classifier = ZoneClassifier((640, 480))
    # 0.0625 * 640 = 40 pixels exactly
    assert classifier.classify(Pose(0.0625, 0.0), {4: zone(4, 0.0, 0.0)}) is None


def test_overlap_picks_nearest_then_lower_id():
    classifier = ZoneClassifier((640, 480))
    overlapping = {
        7: zone(7, 0.0625, 0.0, radius=60),
        3: zone(3, -0.0625, 0.0, radius=60),
    }
    assert classifier.classify(Pose(0.04, 0.0), overlapping) == 7
    assert classifier.classify(Pose(0.0, 0.0), overlapping) == 3


# ---- arming ---------------------------------------------------------------

def fire_sequence(zone_ids, return_to_center):
    machine = TriggerStateMachine()
    return [machine.update(z, return_to_center) for z in zone_ids]


def test_return_to_center_a_a_b():
    # A fires and disarms; B must wait for the center
    assert fire_sequence([1, 1, 3], True) == [True, False, False]


def test_return_to_center_rearms_on_center():
    assert fire_sequence([1, 1, 5, 1], True) == [True, False, False, True]


def test_without_return_to_center_every_new_zone_fires():
    assert fire_sequence([1, 1, 3, 1, 5, 1], False) == [True, False, True, True, False, True]


def test_no_zone_frames_hold_state():
    assert fire_sequence([1, None, 1, None, 3], False) == [True, False, False, False, True]


def test_center_never_fires():
    machine = TriggerStateMachine()
    assert machine.update(5, True) is False
    assert machine.update(5, False) is False
    assert machine.armed


def test_reset_rearms():
    machine = TriggerStateMachine()
    machine.update(1, True)
    assert not machine.armed
    machine.reset()
    assert machine.armed
    assert machine.update(1, True) is True
