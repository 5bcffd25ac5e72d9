"""
Tests for settings loading.
"""
import json

from core.settings import DEFAULT_SETTINGS, load_settings, save_settings


def test_first_run_writes_defaults(tmp_path):
    settings = load_settings(tmp_path)
    assert settings == DEFAULT_SETTINGS
    assert json.loads((tmp_path / "settings.json").read_text()) == DEFAULT_SETTINGS


def test_stored_values_merge_over_defaults(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({
        "accompaniment": {"bpm": 120},
    }))
    settings = load_settings(tmp_path)
    assert settings["accompaniment"]["bpm"] == 120
    assert settings["accompaniment"]["instrument"] == "soft_pad"
    assert settings["audio"]["sample_rate"] == 44100

    # Missing categories are written back
    stored = json.loads((tmp_path / "settings.json").read_text())
    assert "tracking" in stored


def test_save_round_trip(tmp_path):
    settings = load_settings(tmp_path)
    settings["storage"]["active_profile"] = 3
    save_settings(settings, tmp_path)
    assert load_settings(tmp_path)["storage"]["active_profile"] == 3


def test_unreadable_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "settings.json").write_text("{broken")
    assert load_settings(tmp_path) == DEFAULT_SETTINGS


def test_defaults_not_mutated(tmp_path):
    settings = load_settings(tmp_path)
    settings["audio"]["sample_rate"] = 1
    assert DEFAULT_SETTINGS["audio"]["sample_rate"] == 44100
