"""
Profile storage and calibration table exchange.

Storage format:
- One MessagePack map per file (durable key-value store)
- Key headtone_profile_<slot> holds the profile record as JSON text
- Slots 1-3

Exchange format (comma-delimited, UTF-8 with BOM):
- Parameter,Value settings block
- Blank line
- ID,Yaw,Pitch,Radius,SemitoneShift,BaseMidi,Name rows for ids 1-9
"""
import csv
import io
import json
import math
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

import msgpack

from core.constants import DEFAULT_BASE_MIDI, DEFAULT_ZONE_NAMES, RADIUS_MAX, RADIUS_MIN, ZONE_IDS, clamp
from core.errors import ConfigurationError, PersistenceError
from core.models import CalibrationProfile, CalibrationZone

KEY_PREFIX = "headtone_profile_"
PROFILE_SLOTS = (1, 2, 3)

BOM = "\ufeff"
SETTINGS_HEADER = ["Parameter", "Value"]
ZONE_HEADER = ["ID", "Yaw", "Pitch", "Radius", "SemitoneShift", "BaseMidi", "Name"]


def default_profile_path() -> Path:
    return Path.home() / ".headtone" / "profiles.msgpack"


class ProfileStore:
    """Profile slots in a MessagePack key-value file."""

    def __init__(self, path: Optional[Path] = None):
        """
        Args:
            path: Store file (default ~/.headtone/profiles.msgpack)
        """
        if isinstance(path, str):
            path = Path(path)
        self.path = path or default_profile_path()

    @staticmethod
    def slot_key(slot: int) -> str:
        if slot not in PROFILE_SLOTS:
            raise ConfigurationError(f"Profile slot must be one of {PROFILE_SLOTS}, got {slot}")
        return f"{KEY_PREFIX}{slot}"

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "rb") as f:
                data = msgpack.unpackb(f.read(), raw=False)
        except Exception as e:
            raise PersistenceError(f"Failed to read profile store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Invalid profile store {self.path}: expected a map")
        return data

    def _write(self, data: Dict[str, str]):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            packed_data = msgpack.packb(data, use_bin_type=True)
            with open(self.path, "wb") as f:
                f.write(packed_data)
        except Exception as e:
            raise PersistenceError(f"Failed to write profile store {self.path}: {e}") from e

    def save(self, slot: int, profile: CalibrationProfile):
        """
        Raises:
            PersistenceError: If the store cannot be read or written
        """
        key = self.slot_key(slot)
        data = self._read()
        data[key] = json.dumps(profile.to_dict())
        self._write(data)

    def load(self, slot: int) -> Optional[CalibrationProfile]:
        """
        Load a slot.

        Returns:
            The stored profile, or None if the slot is empty

        Raises:
            PersistenceError: If the store or the record is unreadable
        """
        key = self.slot_key(slot)
        text = self._read().get(key)
        if text is None:
            return None
        try:
            return CalibrationProfile.from_dict(json.loads(text))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Corrupt profile in slot {slot}: {e}") from e

    def delete(self, slot: int):
        key = self.slot_key(slot)
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def populated_slots(self) -> List[int]:
        data = self._read()
        return [slot for slot in PROFILE_SLOTS if self.slot_key(slot) in data]


# ---- tabular exchange -------------------------------------------------------

def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def export_table(profile: CalibrationProfile, slot: int = 1) -> str:
    """Render a profile as exchange text (BOM, settings block, zone table)."""
    sound = profile.sound_settings
    settings = [
        ("Profile", slot),
        ("Center_Yaw", f"{profile.center_offset[0]:.4f}"),
        ("Center_Pitch", f"{profile.center_offset[1]:.4f}"),
        ("Smoothing", profile.smoothing_factor),
        ("Trigger_Radius_Global", profile.default_radius),
        ("Sound_Instrument", sound.instrument),
        ("Sound_Volume", sound.volume),
        ("Sound_Duration", sound.duration),
        ("Sound_ReturnToCenter", _format_bool(sound.return_to_center)),
        ("Mouth_Control_Enabled", _format_bool(profile.mouth_control_enabled)),
        ("Mouth_Trigger_Mode", profile.mouth_trigger_mode),
    ]

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(SETTINGS_HEADER)
    writer.writerows(settings)
    writer.writerow([])
    writer.writerow(ZONE_HEADER)
    for zone_id in ZONE_IDS:
        zone = profile.zones.get(zone_id)
        if zone is None:
            writer.writerow([zone_id, "", "", "", "", "", ""])
            continue
        writer.writerow([
            zone_id,
            f"{zone.yaw:.4f}",
            f"{zone.pitch:.4f}",
            zone.radius,
            zone.semitone_shift,
            "" if zone.base_midi is None else zone.base_midi,
            zone.name,
        ])
    return BOM + out.getvalue()


def _parse_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_int(text: str) -> Optional[int]:
    value = _parse_float(text)
    return None if value is None else int(value)


def _apply_setting(fields: Dict, key: str, value: str):
    """Parse one settings-block entry into fields; malformed values are ignored."""
    if key in ("Center_Yaw", "Center_Pitch", "Smoothing", "Sound_Volume", "Sound_Duration"):
        number = _parse_float(value)
        if number is not None:
            fields[key] = number
    elif key == "Trigger_Radius_Global":
        number = _parse_int(value)
        if number is not None:
            fields[key] = int(clamp(number, RADIUS_MIN, RADIUS_MAX))
    elif key in ("Sound_ReturnToCenter", "Mouth_Control_Enabled"):
        fields[key] = value.lower() == "true"
    elif key in ("Sound_Instrument", "Mouth_Trigger_Mode"):
        if value:
            fields[key] = value


def _parse_zone(row: List[str], global_radius: int) -> Optional[CalibrationZone]:
    """One table row to a zone; None when the id or position is unusable."""
    row = [cell.strip() for cell in row] + [""] * (len(ZONE_HEADER) - len(row))
    zone_id = _parse_int(row[0])
    if zone_id not in ZONE_IDS:
        return None
    yaw = _parse_float(row[1])
    pitch = _parse_float(row[2])
    if yaw is None or pitch is None:
        return None

    radius = _parse_int(row[3]) if row[3] else None
    shift = _parse_int(row[4]) if row[4] else None
    base = _parse_int(row[5]) if row[5] else None
    return CalibrationZone(
        id=zone_id,
        yaw=yaw,
        pitch=pitch,
        radius=int(clamp(radius if radius is not None else global_radius, RADIUS_MIN, RADIUS_MAX)),
        semitone_shift=shift or 0,
        base_midi=base if base is not None else DEFAULT_BASE_MIDI[zone_id],
        name=row[6] or DEFAULT_ZONE_NAMES[zone_id],
    )


def import_table(text: str, current: CalibrationProfile) -> CalibrationProfile:
    """
    Parse exchange text into a new profile.

    Settings missing from the block keep their current values; the zone
    table replaces the zone set, skipping rows whose id or position does
    not parse.

    Raises:
        PersistenceError: If the text holds neither settings nor a zone table,
            or the resulting profile is invalid
    """
    text = text.lstrip(BOM)
    fields: Dict = {}
    zone_rows: List[List[str]] = []
    in_zone_table = False
    recognized = False

    for row in csv.reader(io.StringIO(text)):
        if not row or not any(cell.strip() for cell in row):
            continue
        if row[0].strip() == "ID" and len(row) > 2 and row[1].strip() == "Yaw":
            in_zone_table = True
            recognized = True
            continue
        if in_zone_table:
            zone_rows.append(row)
        elif len(row) >= 2:
            key = row[0].strip()
            if key == "Parameter":
                recognized = True
                continue
            _apply_setting(fields, key, row[1].strip())

    if not recognized and not fields:
        raise PersistenceError("No calibration settings or zone table found")

    global_radius = fields.get("Trigger_Radius_Global", current.default_radius)
    zones = {}
    skipped = 0
    for row in zone_rows:
        try:
            zone = _parse_zone(row, global_radius)
        except ValueError:
            zone = None
        if zone is None:
            skipped += 1
            continue
        zones[zone.id] = zone
    if skipped:
        print(f"[PROFILE] Skipped {skipped} uncalibrated or unparsable zone rows")

    sound = current.sound_settings
    try:
        sound = replace(
            sound,
            instrument=fields.get("Sound_Instrument", sound.instrument),
            volume=fields.get("Sound_Volume", sound.volume),
            duration=fields.get("Sound_Duration", sound.duration),
            return_to_center=fields.get("Sound_ReturnToCenter", sound.return_to_center),
        )
        return replace(
            current,
            zones=zones if in_zone_table else dict(current.zones),
            center_offset=(
                fields.get("Center_Yaw", current.center_offset[0]),
                fields.get("Center_Pitch", current.center_offset[1]),
            ),
            default_radius=global_radius,
            smoothing_factor=fields.get("Smoothing", current.smoothing_factor),
            sound_settings=sound,
            mouth_control_enabled=fields.get("Mouth_Control_Enabled", current.mouth_control_enabled),
            mouth_trigger_mode=fields.get("Mouth_Trigger_Mode", current.mouth_trigger_mode),
        )
    except ValueError as e:
        raise PersistenceError(f"Invalid calibration table: {e}") from e


def write_table(path: Path, text: str):
    """Write exchange text to a file."""
    try:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise PersistenceError(f"Failed to write calibration table to {path}: {e}") from e


def read_table(path: Path) -> str:
    """Read exchange text from a file."""
    try:
        with open(Path(path), "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceError(f"Failed to read calibration table from {path}: {e}") from e
