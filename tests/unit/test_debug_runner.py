from __future__ import annotations

import pytest

from chip8emu import debug_runner
from chip8emu.chip8.computer import Chip8Computer


def test_parse_hex_accepts_prefixed_and_plain() -> None:
    assert debug_runner._parse_hex("0x0300") == 0x0300
    assert debug_runner._parse_hex("300") == 0x0300


@pytest.mark.parametrize("value", ["", "0x1000", "xyz", "-1"])
def test_parse_hex_rejects_invalid(value: str) -> None:
    with pytest.raises(ValueError):
        debug_runner._parse_hex(value)


def test_parse_range_and_merge() -> None:
    rng = debug_runner._parse_range("0010:001F")
    assert rng.start == 0x0010
    assert rng.end == 0x001F
    merged = debug_runner._merge_ranges(
        [debug_runner.DumpRange(0x0010, 0x0015), debug_runner.DumpRange(0x0000, 0x000F)]
    )
    assert merged == [debug_runner.DumpRange(0x0000, 0x0015)]


def test_parse_range_rejects_reversed() -> None:
    with pytest.raises(ValueError):
        debug_runner._parse_range("0020:0010")


def test_merge_ranges_defaults_to_full_memory() -> None:
    merged = debug_runner._merge_ranges([])
    assert merged == [debug_runner.DumpRange(0x000, 0xFFF)]


@pytest.mark.parametrize(
    "spec, expected",
    [("a@10", (10, 0xA)), ("0@0", (0, 0x0)), ("F@512", (512, 0xF))],
)
def test_parse_key_event(spec: str, expected: tuple) -> None:
    assert debug_runner._parse_key_event(spec) == expected


@pytest.mark.parametrize("spec", ["A", "10@5", "A@-1", "@3"])
def test_parse_key_event_rejects_invalid(spec: str) -> None:
    with pytest.raises(ValueError):
        debug_runner._parse_key_event(spec)


def test_format_hex_dump_renders_expected_table() -> None:
    snapshot = bytearray(4096)
    snapshot[0x000:0x002] = b"\x12\x34"
    snapshot[0x010] = 0xCD
    dump = debug_runner._format_hex_dump(bytes(snapshot), [debug_runner.DumpRange(0x0000, 0x0010)])
    lines = dump.splitlines()
    assert lines[0].startswith("ADDR +0 +1")
    assert lines[1].startswith("0000 12 34")
    assert lines[2].startswith("0010 CD 00")
    assert len(lines) == 3


def test_write_dump_binary(tmp_path) -> None:
    snapshot = bytes(range(256)) * 16
    target = tmp_path / "dump.bin"
    debug_runner._write_dump(snapshot, [debug_runner.DumpRange(0x10, 0x13)], target=target, fmt="bin")
    assert target.read_bytes() == bytes([0x10, 0x11, 0x12, 0x13])


def test_execute_program_stops_at_breakpoint() -> None:
    computer = Chip8Computer()
    # LD V0, 1; LD V1, 2; JP 0x204
    computer.load_bytes(bytes([0x60, 0x01, 0x61, 0x02, 0x12, 0x04]))

    result = debug_runner._execute_program(
        computer, max_steps=100, breakpoints=[0x204], max_seconds=None
    )
    assert result.break_hit
    assert result.steps == 2
    assert computer.cpu_core.registers.program_counter == 0x204


def test_execute_program_presses_scheduled_keys() -> None:
    computer = Chip8Computer()
    # LD V2, K; JP 0x202
    computer.load_bytes(bytes([0xF2, 0x0A, 0x12, 0x02]))

    result = debug_runner._execute_program(
        computer, max_steps=20, breakpoints=[], max_seconds=None, key_events={5: [0x7]}
    )
    assert result.limit_hit
    assert computer.cpu_core.registers.v[2] == 0x7
