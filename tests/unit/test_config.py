"""Machine configuration tests."""

from __future__ import annotations

import json

import pytest

from chip8emu.config import DEFAULT_KEYMAP, MachineConfig


def test_defaults() -> None:
    config = MachineConfig()
    assert config.cpu_hz == 600
    assert config.timer_hz == 60
    assert config.stack_depth == 16
    assert config.steps_per_timer_tick == 10
    assert config.keymap == DEFAULT_KEYMAP
    assert config.keymap is not DEFAULT_KEYMAP


@pytest.mark.parametrize(
    "kwargs",
    [
        {"cpu_hz": 0},
        {"timer_hz": -1},
        {"stack_depth": 0},
        {"scale": 0},
        {"keymap": {"q": 16}},
    ],
)
def test_validation_rejects_bad_values(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        MachineConfig(**kwargs)


def test_save_and_load_roundtrip(tmp_path) -> None:
    path = tmp_path / "machine.json"
    original = MachineConfig(cpu_hz=900, seed=7, keymap={"k": 0xF})
    original.save(path)

    loaded = MachineConfig.load(path)
    assert loaded == original


def test_load_rejects_unknown_keys_and_non_objects(tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"cpu_hz": 600, "turbo": True}), encoding="utf-8")
    with pytest.raises(ValueError, match="turbo"):
        MachineConfig.load(path)

    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValueError):
        MachineConfig.load(path)


def test_env_overrides_apply() -> None:
    env = {
        "CHIP8EMU_CPU_HZ": "1200",
        "CHIP8EMU_ENABLE_AUDIO": "yes",
        "CHIP8EMU_SEED": "42",
        "CHIP8EMU_SCALE": "",
    }
    config = MachineConfig().with_env(env)

    assert config.cpu_hz == 1200
    assert config.enable_audio is True
    assert config.seed == 42
    assert config.scale == 10
    assert config.steps_per_timer_tick == 20


def test_env_override_with_bad_value_raises() -> None:
    with pytest.raises(ValueError, match="CHIP8EMU_COUPLE_TIMERS"):
        MachineConfig().with_env({"CHIP8EMU_COUPLE_TIMERS": "maybe"})


@pytest.mark.parametrize(
    "payload",
    [
        {"cpu_hz": "fast"},
        {"timer_hz": 60.5},
        {"scale": True},
        {"enable_audio": "yes"},
        {"couple_timers": 1},
        {"seed": "abc"},
        {"keymap": ["q", 4]},
        {"keymap": {"q": "4"}},
        {"keymap": {"q": None}},
    ],
)
def test_wrongly_typed_values_raise_value_error(tmp_path, payload: dict) -> None:
    path = tmp_path / "typed.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError):
        MachineConfig.load(path)
