"""
Application settings (~/.headtone/settings.json).

Stored values are merged over the defaults category by category, so new
settings appear automatically; a missing file is created with defaults.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "audio": {
        "sample_rate": 44100,
        "buffer_size": 512,
        "output_device": "Default",
    },
    "tracking": {
        "frame_width": 640,
        "frame_height": 480,
        "sensitivity_yaw": 1.0,
        "sensitivity_pitch": 1.0,
    },
    "accompaniment": {
        "progression": "none",
        "bpm": 100,
        "volume": 0.3,
        "instrument": "soft_pad",
        "arpeggio": False,
        "metronome": False,
        "narration": False,
        "voice_rate": 1.0,
    },
    "storage": {
        "profile_path": "",  # empty = ~/.headtone/profiles.msgpack
        "active_profile": 1,
    },
}


def default_config_dir() -> Path:
    return Path.home() / ".headtone"


def load_settings(config_dir: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Load settings from config file."""
    config_path = Path(config_dir or default_config_dir()) / "settings.json"
    settings = copy.deepcopy(DEFAULT_SETTINGS)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                loaded = json.load(f)
            # Merge with defaults (in case new settings added)
            settings_modified = False
            for category in settings:
                if isinstance(loaded.get(category), dict):
                    settings[category].update(loaded[category])
                else:
                    settings_modified = True

            # Save back if new categories were added
            if settings_modified:
                save_settings(settings, config_dir)
                print("[SETTINGS] Added new setting categories to file")
        except (OSError, ValueError, AttributeError) as e:
            print(f"[SETTINGS] Failed to load settings: {e}")
        return settings

    # No config file exists, save defaults
    save_settings(settings, config_dir)
    print("[SETTINGS] Created new settings file with defaults")
    return settings


def save_settings(settings: Dict[str, Dict[str, Any]], config_dir: Optional[Path] = None):
    """Save settings to config file."""
    config_path = Path(config_dir or default_config_dir()) / "settings.json"
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            json.dump(settings, f, indent=2)
    except OSError as e:
        print(f"[SETTINGS] Failed to save settings: {e}")
