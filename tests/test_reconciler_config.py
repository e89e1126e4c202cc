# tests/test_reconciler_config.py
import json
import pytest
from pathlib import Path

from captionmirror.ReconcilerConfig import ReconcilerConfig, load_config


def test_defaults():
    config = ReconcilerConfig()

    assert config.poll_interval == pytest.approx(0.2)
    assert config.read_timeout == pytest.approx(1.0)
    assert config.probe_chars == 400
    assert config.min_overlap_chars == 24
    assert config.max_history_chars == 20_000_000
    assert config.eviction_keep_ratio == pytest.approx(0.9)


def test_from_dict_ignores_unknown_keys():
    config = ReconcilerConfig.from_dict({"poll_interval_ms": 50, "colour": "blue"})

    assert config.poll_interval_ms == 50
    assert config.probe_chars == 400


def test_from_dict_accepts_missing_section():
    assert ReconcilerConfig.from_dict(None) == ReconcilerConfig()


@pytest.mark.parametrize("overrides", [
    {"poll_interval_ms": 0},
    {"read_timeout_ms": -1},
    {"min_overlap_chars": 0},
    {"probe_chars": 10, "min_overlap_chars": 24},
    {"max_history_chars": 0},
    {"eviction_keep_ratio": 1.5},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValueError):
        ReconcilerConfig.from_dict(overrides)


def test_load_config(tmp_path):
    path = tmp_path / "caption_config.json"
    path.write_text(json.dumps({"reconciler": {"probe_chars": 200}}), encoding="utf-8")

    assert load_config(path) == {"reconciler": {"probe_chars": 200}}


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.json")


def test_shipped_config_is_valid():
    config_path = Path(__file__).parent.parent / "config" / "caption_config.json"

    config = load_config(config_path)

    ReconcilerConfig.from_dict(config["reconciler"])
    assert config["source"]["type"] in ("file", "push")
