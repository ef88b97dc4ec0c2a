import pytest

from typerace_game import config
from typerace_game.engine import Difficulty, Faction, Phase


def test_get_config_reads_dot_paths():
    assert config.get_config("lifecycle.max_participants") == 8
    assert config.get_config("pacing.jitter.min") == 0.85
    assert config.get_config("lifecycle.missing", 5) == 5
    assert config.get_config("prompts.0.x", "fallback") == "fallback"


def test_load_config_missing_file_returns_none(tmp_path):
    assert config.load_config(tmp_path / "missing.json") is None


def test_load_config_bad_json_returns_none(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    assert config.load_config(path) is None


def test_load_config_reads_file(tmp_path):
    path = tmp_path / "balance.json"
    path.write_text('{"lifecycle": {"grace_period_ms": 2500}}')
    assert config.load_config(path) == {"lifecycle": {"grace_period_ms": 2500}}


def test_phase_moves_one_step_at_a_time():
    assert Phase.PENDING.can_advance_to(Phase.COUNTDOWN)
    assert not Phase.PENDING.can_advance_to(Phase.ACTIVE)
    assert not Phase.FINISHED.can_advance_to(Phase.PENDING)
    assert Phase.from_string("active") is Phase.ACTIVE


def test_enum_lookups():
    assert Faction.from_value("d12") is Faction.ETHER
    assert Faction.from_value("unknown") is None
    assert Difficulty.from_str("MASTER") is Difficulty.MASTER
    with pytest.raises(ValueError):
        Difficulty.from_str("legendary")
