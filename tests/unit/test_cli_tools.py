"""CLI helper tests."""

import sys

import pytest

from chip8emu import app
from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.config import DEFAULT_KEYMAP, MachineConfig


def test_handle_key_event_maps_host_keys() -> None:
    keyboard = Chip8Keyboard()
    app._handle_key_event(keyboard, DEFAULT_KEYMAP, "4", True)
    assert keyboard.is_pressed(0xC)
    app._handle_key_event(keyboard, DEFAULT_KEYMAP, "4", False)
    assert not keyboard.is_pressed(0xC)

    app._handle_key_event(keyboard, DEFAULT_KEYMAP, "space", True)
    assert keyboard.get_pressed() == []


def test_build_caption_includes_rom_and_pause_state() -> None:
    computer = Chip8Computer()
    assert app._build_caption(computer, False) == "CHIP-8"
    computer.load_bytes(bytes([0x12, 0x00]), name="PONG")
    assert app._build_caption(computer, True) == "CHIP-8 | PONG | Paused"


def test_resolve_config_layers_file_env_and_flags(tmp_path, monkeypatch) -> None:
    config_path = tmp_path / "machine.json"
    MachineConfig(cpu_hz=300, scale=4).save(config_path)
    monkeypatch.setenv("CHIP8EMU_SCALE", "6")
    monkeypatch.delenv("CHIP8EMU_CPU_HZ", raising=False)

    parser = app._build_argument_parser()
    args = parser.parse_args(["rom.ch8", "--config", str(config_path), "--seed", "3", "--no-audio"])
    config = app._resolve_config(args)

    assert config.cpu_hz == 300
    assert config.scale == 6
    assert config.seed == 3
    assert config.enable_audio is False


def test_main_reports_missing_rom(tmp_path, capsys) -> None:
    exit_code = app.main([str(tmp_path / "missing.ch8")])
    captured = capsys.readouterr()
    assert exit_code == app.EXIT_LOAD_FAILED
    assert "Failed to load program" in captured.err


def test_main_without_pygame_exits(tmp_path, monkeypatch) -> None:
    rom_path = tmp_path / "loop.ch8"
    rom_path.write_bytes(bytes([0x12, 0x00]))
    monkeypatch.setitem(sys.modules, "pygame", None)

    with pytest.raises(SystemExit, match="pygame is required"):
        app.main([str(rom_path)])
