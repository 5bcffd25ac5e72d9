"""
Tests for undoable calibration edits.
"""
from core.commands import (
    AutoCalibrateCommand,
    CommandHistory,
    MoveZoneCommand,
    RecordZoneCommand,
    ResetCalibrationCommand,
    ResizeZoneCommand,
    SetBaseMidiCommand,
    SetSemitoneCommand,
)
from core.models import RangeBounds
from tracking.calibration import CalibrationModel


def test_undo_redo_zone_edits():
    model = CalibrationModel()
    history = CommandHistory(model)

    history.execute(RecordZoneCommand(1, 0.1, 0.1))
    history.execute(MoveZoneCommand(1, 0.2, 0.2))
    history.execute(ResizeZoneCommand(1, 60))
    assert (model.get_zone(1).yaw, model.get_zone(1).radius) == (0.2, 60)

    assert history.undo()
    assert model.get_zone(1).radius == 40
    assert history.undo()
    assert model.get_zone(1).yaw == 0.1
    assert history.undo()
    assert model.get_zone(1) is None
    assert not history.can_undo()

    assert history.redo()
    assert model.get_zone(1).yaw == 0.1


def test_new_command_clears_redo():
    model = CalibrationModel()
    history = CommandHistory(model)
    history.execute(RecordZoneCommand(2, 0.0, 0.0))
    history.undo()
    history.execute(RecordZoneCommand(3, 0.0, 0.0))
    assert not history.can_redo()
    assert history.get_undo_description() == "Record Zone 3"


def test_descriptions():
    assert SetSemitoneCommand(4, 1).description == "Sharp Zone 4"
    assert SetSemitoneCommand(4, -1).description == "Flat Zone 4"
    assert SetSemitoneCommand(4, 0).description == "Natural Zone 4"
    assert SetBaseMidiCommand(4, 66).description == "Set Pitch Zone 4"


def test_undo_auto_calibrate_restores_previous_zones():
    model = CalibrationModel()
    history = CommandHistory(model)
    history.execute(RecordZoneCommand(1, 0.5, 0.5))
    before = model.profile

    history.execute(AutoCalibrateCommand(RangeBounds(-0.2, 0.2, -0.2, 0.2)))
    assert model.calibrated_count() == 9
    history.undo()
    assert model.profile == before


def test_undo_reset():
    model = CalibrationModel()
    history = CommandHistory(model)
    history.execute(RecordZoneCommand(1, 0.0, 0.0))
    history.execute(ResetCalibrationCommand())
    assert model.calibrated_count() == 0
    history.undo()
    assert model.calibrated_count() == 1


def test_history_limit():
    model = CalibrationModel()
    history = CommandHistory(model, max_history=3)
    for i in range(5):
        history.execute(MoveZoneCommand(1, i, i))
    assert len(history._undo_stack) == 3
