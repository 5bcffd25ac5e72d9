"""
Tests for the command-line entry point (offline commands only).
"""
import json

import pytest

import main


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({
        "storage": {"profile_path": str(tmp_path / "profiles.msgpack"), "active_profile": 1},
    }))
    return tmp_path


def test_simulate_prints_bars_and_notes(config_dir, capsys):
    code = main.main(["--config-dir", str(config_dir), "simulate",
                      "--progression", "pop_c", "--duration", "5"])
    out = capsys.readouterr().out
    assert code == 0
    assert "[BAR] 0 m1 C 4 beats 2.40s" in out
    assert "[BAR] 2 m3 Am" in out
    assert "9 notes:" in out


def test_simulate_with_pose_file(config_dir, tmp_path, capsys):
    table = tmp_path / "cal.csv"
    table.write_text("ID,Yaw,Pitch,Radius,SemitoneShift,BaseMidi,Name\n1,0.2,0.0,40,0,60,Do\n")
    assert main.main(["--config-dir", str(config_dir), "import", str(table)]) == 0

    face = [[0.0, 0.0]] * 468
    face[1] = [0.54, 0.67]
    face[33] = [0.4, 0.4]
    face[263] = [0.6, 0.4]
    face[10] = [0.5, 0.2]
    face[152] = [0.5, 0.8]
    face[13] = [0.5, 0.6]
    face[14] = [0.5, 0.6]
    poses = tmp_path / "poses.jsonl"
    poses.write_text("null\n" + (json.dumps(face) + "\n") * 40)

    assert main.main(["--config-dir", str(config_dir), "simulate", "--poses", str(poses)]) == 0
    out = capsys.readouterr().out
    assert out.count("[NOTE] zone 1 C4") == 1


def test_export_empty_slot_fails(config_dir):
    assert main.main(["--config-dir", str(config_dir), "export", "--slot", "3", "-"]) == 1


def test_list(config_dir, capsys):
    assert main.main(["--config-dir", str(config_dir), "list"]) == 0
    out = capsys.readouterr().out
    assert "amazing_grace" in out
    assert "[2] Phrase 1 (bars 1-5)" in out


def test_unknown_progression_reports_error(config_dir, capsys):
    assert main.main(["--config-dir", str(config_dir), "simulate",
                      "--progression", "nope", "--duration", "1"]) == 0
    assert "Progression 'nope' not found" in capsys.readouterr().out
