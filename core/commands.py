"""
Command pattern for undo/redo of calibration edits.

All zone edits made from the command surface go through commands to enable:
- Full undo/redo history
- Saving the active profile after every change
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from core.models import CalibrationProfile, RangeBounds


class Command(ABC):
    """Base class for all commands."""

    @abstractmethod
    def execute(self, model):
        """
        Apply the command.

        Args:
            model: CalibrationModel to operate on
        """
        raise NotImplementedError()

    @abstractmethod
    def undo(self, model):
        """
        Revert the command.

        Args:
            model: CalibrationModel to operate on
        """
        raise NotImplementedError()

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable command description for UI."""
        raise NotImplementedError()


class ProfileCommand(Command):
    """
    Command that snapshots the whole profile before applying an edit.

    Profiles are immutable, so undo restores the snapshot.
    """

    def __init__(self):
        self._previous_profile: Optional[CalibrationProfile] = None

    def execute(self, model):
        self._previous_profile = model.profile
        self.apply(model)

    def undo(self, model):
        if self._previous_profile is None:
            raise ValueError("Command has not been executed yet")
        model.profile = self._previous_profile

    @abstractmethod
    def apply(self, model):
        raise NotImplementedError()


class RecordZoneCommand(ProfileCommand):
    """Record a zone at the current display position."""

    def __init__(self, zone_id: int, yaw: float, pitch: float, name: Optional[str] = None):
        super().__init__()
        self.zone_id = zone_id
        self.yaw = yaw
        self.pitch = pitch
        self.name = name

    def apply(self, model):
        model.record_zone(self.zone_id, self.yaw, self.pitch, self.name)

    @property
    def description(self) -> str:
        return f"Record Zone {self.zone_id}"


class MoveZoneCommand(ProfileCommand):
    """Drag a zone to a new position."""

    def __init__(self, zone_id: int, yaw: float, pitch: float):
        super().__init__()
        self.zone_id = zone_id
        self.yaw = yaw
        self.pitch = pitch

    def apply(self, model):
        model.update_zone_position(self.zone_id, self.yaw, self.pitch)

    @property
    def description(self) -> str:
        return f"Move Zone {self.zone_id}"


class ResizeZoneCommand(ProfileCommand):
    def __init__(self, zone_id: int, radius: float):
        super().__init__()
        self.zone_id = zone_id
        self.radius = radius

    def apply(self, model):
        model.update_zone_radius(self.zone_id, self.radius)

    @property
    def description(self) -> str:
        return f"Resize Zone {self.zone_id}"


class SetSemitoneCommand(ProfileCommand):
    def __init__(self, zone_id: int, shift: int):
        super().__init__()
        self.zone_id = zone_id
        self.shift = shift

    def apply(self, model):
        model.set_semitone(self.zone_id, self.shift)

    @property
    def description(self) -> str:
        label = {1: "Sharp", -1: "Flat"}.get(self.shift, "Natural")
        return f"{label} Zone {self.zone_id}"


class SetBaseMidiCommand(ProfileCommand):
    def __init__(self, zone_id: int, base_midi: Optional[int]):
        super().__init__()
        self.zone_id = zone_id
        self.base_midi = base_midi

    def apply(self, model):
        model.set_base_midi(self.zone_id, self.base_midi)

    @property
    def description(self) -> str:
        return f"Set Pitch Zone {self.zone_id}"


class SetCenterCommand(ProfileCommand):
    """Use the current smoothed pose as center."""

    def __init__(self, raw_yaw: float, raw_pitch: float):
        super().__init__()
        self.raw_yaw = raw_yaw
        self.raw_pitch = raw_pitch

    def apply(self, model):
        model.set_center(self.raw_yaw, self.raw_pitch)

    @property
    def description(self) -> str:
        return "Set Center"


class SetDefaultRadiusCommand(ProfileCommand):
    def __init__(self, radius: float):
        super().__init__()
        self.radius = radius

    def apply(self, model):
        model.set_default_radius(self.radius)

    @property
    def description(self) -> str:
        return "Set Trigger Radius"


class AutoCalibrateCommand(ProfileCommand):
    """Replace all zones with a grid derived from a range sweep."""

    def __init__(self, bounds: RangeBounds, sensitivity=(1.0, 1.0)):
        super().__init__()
        self.bounds = bounds
        self.sensitivity = sensitivity

    def apply(self, model):
        model.auto_generate_from_range(self.bounds, self.sensitivity)

    @property
    def description(self) -> str:
        return "Auto Calibrate"


class ImportTableCommand(ProfileCommand):
    """Load a calibration table; raises PersistenceError on malformed text."""

    def __init__(self, text: str):
        super().__init__()
        self.text = text

    def apply(self, model):
        model.import_table(self.text)

    @property
    def description(self) -> str:
        return "Import Calibration"


class ResetCalibrationCommand(ProfileCommand):
    def apply(self, model):
        model.reset()

    @property
    def description(self) -> str:
        return "Reset Calibration"


class CommandHistory:
    """Manages undo/redo command history."""

    def __init__(self, model, max_history: int = 100):
        """
        Args:
            model: CalibrationModel to operate on
            max_history: Maximum number of commands to keep
        """
        self.model = model
        self.max_history = max_history
        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []

    def execute(self, command: Command):
        """Execute command and add to history."""
        command.execute(self.model)

        self._undo_stack.append(command)
        if len(self._undo_stack) > self.max_history:
            self._undo_stack.pop(0)

        # Clear redo stack when new command is executed
        self._redo_stack.clear()

    def undo(self) -> bool:
        """Undo last command. Returns True if successful."""
        if not self.can_undo():
            return False

        command = self._undo_stack.pop()
        command.undo(self.model)
        self._redo_stack.append(command)
        return True

    def redo(self) -> bool:
        """Redo last undone command. Returns True if successful."""
        if not self.can_redo():
            return False

        command = self._redo_stack.pop()
        command.execute(self.model)
        self._undo_stack.append(command)
        return True

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    def clear(self):
        """Clear all command history."""
        self._undo_stack.clear()
        self._redo_stack.clear()

    def get_undo_description(self) -> Optional[str]:
        """Get description of command that would be undone."""
        if self.can_undo():
            return self._undo_stack[-1].description
        return None

    def get_redo_description(self) -> Optional[str]:
        """Get description of command that would be redone."""
        if self.can_redo():
            return self._redo_stack[-1].description
        return None
