"""Tests for Chip8Computer program loading and machine wiring."""

from __future__ import annotations

import pytest

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.config import MachineConfig
from chip8emu.errors import ProgramLoadError, StackUnderflowError
from chip8emu.memory import PROGRAM_START


def test_load_program_installs_rom_and_powers_on(tmp_path) -> None:
    rom_path = tmp_path / "demo.ch8"
    rom_path.write_bytes(bytes([0x60, 0x2A, 0x12, 0x02]))

    computer = Chip8Computer()
    image = computer.load_program(rom_path)

    assert image.name == "DEMO"
    assert computer.rom is image
    assert computer.running
    assert computer.memory.load16(PROGRAM_START) == 0x602A

    computer.tick(1)
    assert computer.cpu_core.registers.v[0] == 0x2A


def test_load_program_failure_keeps_machine_stopped(tmp_path) -> None:
    computer = Chip8Computer()
    with pytest.raises(ProgramLoadError):
        computer.load_program(tmp_path / "missing.ch8")
    assert computer.rom is None
    assert not computer.running


def test_reloading_clears_previous_program() -> None:
    computer = Chip8Computer()
    computer.load_bytes(bytes([0xAA] * 8))
    computer.load_bytes(bytes([0x12, 0x00]))

    assert computer.memory.read_block(PROGRAM_START, 4) == bytes([0x12, 0x00, 0x00, 0x00])
    assert computer.cpu_core.registers.program_counter == PROGRAM_START


def test_timers_decay_at_timer_rate_not_instruction_rate() -> None:
    computer = Chip8Computer(MachineConfig(cpu_hz=600, timer_hz=60))
    # LD V0, 0x05; LD DT, V0; JP 0x204
    computer.load_bytes(bytes([0x60, 0x05, 0xF0, 0x15, 0x12, 0x04]))

    computer.tick(2)
    assert computer.cpu_core.timers.delay == 5
    computer.tick(8)
    assert computer.cpu_core.timers.delay == 4
    computer.tick(100)
    assert computer.cpu_core.timers.delay == 0


def test_sound_processor_follows_sound_timer() -> None:
    computer = Chip8Computer()
    # LD V0, 0x02; LD ST, V0; JP 0x204
    computer.load_bytes(bytes([0x60, 0x02, 0xF0, 0x18, 0x12, 0x04]))

    computer.tick(10)
    assert computer.sound_processor.playing is True
    computer.tick(20)
    assert computer.sound_processor.playing is False


def test_wait_for_key_is_resolved_by_keypad() -> None:
    computer = Chip8Computer()
    # LD V3, K; JP 0x202
    computer.load_bytes(bytes([0xF3, 0x0A, 0x12, 0x02]))

    computer.tick(5)
    assert computer.cpu_core.awaiting_key == 3

    computer.keyboard.press(0x9)
    computer.tick(1)
    assert computer.cpu_core.awaiting_key is None
    assert computer.cpu_core.registers.v[3] == 0x9


def test_seeded_random_is_reproducible() -> None:
    program = bytes([0xC0, 0xFF, 0xC1, 0xFF, 0xC2, 0xFF])
    values = []
    for _ in range(2):
        computer = Chip8Computer(MachineConfig(seed=1234))
        computer.load_bytes(program)
        computer.tick(3)
        values.append(computer.cpu_core.registers.v[:3])
    assert values[0] == values[1]


def test_machine_error_stops_computer() -> None:
    computer = Chip8Computer()
    computer.load_bytes(bytes([0x00, 0xEE]))

    with pytest.raises(StackUnderflowError):
        computer.tick(1)
    assert not computer.running
    assert isinstance(computer.last_error, StackUnderflowError)


def test_reset_restarts_program() -> None:
    computer = Chip8Computer()
    computer.load_bytes(bytes([0x70, 0x01, 0x12, 0x00]))
    computer.tick(4)
    assert computer.cpu_core.registers.v[0] == 2

    computer.reset()
    assert computer.cpu_core.registers.v[0] == 0
    assert computer.cpu_core.registers.program_counter == PROGRAM_START
    assert computer.memory.load16(PROGRAM_START) == 0x7001


def test_dump_memory_writes_snapshot(tmp_path) -> None:
    computer = Chip8Computer()
    computer.load_bytes(bytes([0x12, 0x00]))

    target = computer.dump_memory(tmp_path)
    data = target.read_bytes()
    assert len(data) == 4096
    assert data[PROGRAM_START:PROGRAM_START + 2] == bytes([0x12, 0x00])


def test_key_held_before_wait_does_not_satisfy_it() -> None:
    computer = Chip8Computer()
    # LD V0, K; ADD V1, 0x01; JP 0x200
    computer.load_bytes(bytes([0xF0, 0x0A, 0x71, 0x01, 0x12, 0x00]))
    computer.keyboard.press(0x5)

    computer.tick(30)
    assert computer.cpu_core.awaiting_key == 0
    assert computer.cpu_core.registers.v[1] == 0


def test_held_key_counts_after_release_and_repress() -> None:
    computer = Chip8Computer()
    computer.load_bytes(bytes([0xF0, 0x0A, 0x71, 0x01, 0x12, 0x00]))
    computer.keyboard.press(0x5)
    computer.tick(3)

    computer.keyboard.release(0x5)
    computer.tick(1)
    computer.keyboard.press(0x5)
    computer.tick(1)

    assert computer.cpu_core.awaiting_key is None
    assert computer.cpu_core.registers.v[0] == 0x5


def test_each_wait_needs_a_new_press() -> None:
    computer = Chip8Computer()
    computer.load_bytes(bytes([0xF0, 0x0A, 0x71, 0x01, 0x12, 0x00]))
    computer.tick(2)
    computer.keyboard.press(0x7)

    computer.tick(20)
    # One wait resolved; the loop is back on LD V0, K with 7 still held.
    assert computer.cpu_core.registers.v[1] == 1
    assert computer.cpu_core.awaiting_key == 0


def test_reset_clears_display_and_keypad() -> None:
    computer = Chip8Computer()
    # LD F, V0; DRW V0, V0, 5; JP 0x204
    computer.load_bytes(bytes([0xF0, 0x29, 0xD0, 0x05, 0x12, 0x04]))
    computer.tick(2)
    computer.keyboard.press(0x3)
    assert computer.display.get_pixel(0, 0) == 1

    computer.reset()

    assert all(not lit for row in computer.display.pixels for lit in row)
    assert computer.keyboard.get_pressed() == []
    assert computer.running
