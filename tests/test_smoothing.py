"""
Tests for pose smoothing and normalization.
"""
import pytest

from core.models import Pose
from tracking.smoothing import PoseSmoother


@pytest.mark.parametrize("alpha", [0.05, 0.15, 0.5, 0.99, 1.0])
def test_constant_input_converges_monotonically(alpha):
    """Repeated updates with a constant input approach it without overshoot."""
    smoother = PoseSmoother(alpha)
    target = (0.3, -0.2)
    prev_error = (abs(target[0]), abs(target[1]))
    for _ in range(200):
        pose = smoother.update(*target)
        error = (abs(target[0] - pose.yaw), abs(target[1] - pose.pitch))
        assert error[0] <= prev_error[0] + 1e-12
        assert error[1] <= prev_error[1] + 1e-12
        prev_error = error
    assert prev_error[0] < 1e-3 and prev_error[1] < 1e-3


def test_first_update_from_origin():
    smoother = PoseSmoother(0.15)
    pose = smoother.update(1.0, 2.0)
    assert pose.yaw == pytest.approx(0.15)
    assert pose.pitch == pytest.approx(0.30)
    assert smoother.raw == Pose(1.0, 2.0)


@pytest.mark.parametrize("alpha", [0.0, -0.1, 1.01])
def test_invalid_smoothing_factor_rejected(alpha):
    with pytest.raises(ValueError):
        PoseSmoother(alpha)

    smoother = PoseSmoother()
    with pytest.raises(ValueError):
        smoother.smoothing_factor = alpha
    assert smoother.smoothing_factor == 0.15


def test_normalize_subtracts_offset_then_scales():
    smoother = PoseSmoother(sensitivity=(2.0, 0.5))
    display = smoother.normalize(Pose(0.3, 0.65), (0.1, 0.45))
    assert display.yaw == pytest.approx(0.4)
    assert display.pitch == pytest.approx(0.1)


def test_reset_returns_to_origin():
    smoother = PoseSmoother(1.0)
    smoother.update(0.5, 0.5)
    smoother.reset()
    assert smoother.smoothed == Pose(0.0, 0.0)
