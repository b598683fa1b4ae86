"""Headless runner for CHIP-8 ROM debugging workflows."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.config import MachineConfig
from chip8emu.errors import Chip8Error, ProgramLoadError
from chip8emu.memory import MEMORY_SIZE


DEFAULT_MAX_STEPS = 100_000
EXECUTION_CHUNK = 64
ADDRESS_MASK = MEMORY_SIZE - 1

EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_STEP_LIMIT = 2
EXIT_TIME_LIMIT = 3
EXIT_MACHINE_ERROR = 4


@dataclass(frozen=True)
class DumpRange:
    """Inclusive memory range used for dumping."""

    start: int
    end: int

    def iter_addresses(self) -> Iterable[int]:
        for address in range(self.start, self.end + 1):
            yield address & ADDRESS_MASK


@dataclass
class RunResult:
    steps: int = 0
    break_hit: bool = False
    timeout_hit: bool = False
    limit_hit: bool = False


def _parse_hex(value: str) -> int:
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not text:
        raise ValueError("empty hexadecimal value")
    result = int(text, 16)
    if not (0 <= result <= ADDRESS_MASK):
        raise ValueError("hex value out of range")
    return result


def _parse_range(spec: str) -> DumpRange:
    start_str, sep, end_str = spec.partition(":")
    if not sep:
        raise ValueError("range specification must contain ':'")
    start = _parse_hex(start_str)
    end = _parse_hex(end_str)
    if end < start:
        raise ValueError("range end must be >= start")
    return DumpRange(start, end)


def _parse_key_event(spec: str) -> Tuple[int, int]:
    """Parse ``KEY@STEP`` where KEY is a hex digit and STEP a clock count."""

    key_str, sep, step_str = spec.partition("@")
    if not sep:
        raise ValueError("key event must look like KEY@STEP")
    key = int(key_str, 16)
    if not (0 <= key < 16):
        raise ValueError("key must be 0-F")
    step = int(step_str, 10)
    if step < 0:
        raise ValueError("step must be non-negative")
    return step, key


def _merge_ranges(ranges: Sequence[DumpRange]) -> List[DumpRange]:
    if not ranges:
        return [DumpRange(0x000, ADDRESS_MASK)]
    ordered = sorted(ranges, key=lambda r: (r.start, r.end))
    merged: List[DumpRange] = []
    for current in ordered:
        if not merged:
            merged.append(current)
            continue
        last = merged[-1]
        if current.start <= last.end + 1:
            merged[-1] = DumpRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def _format_hex_dump(snapshot: bytes, dump_ranges: Sequence[DumpRange]) -> str:
    lines: List[str] = []
    header = "ADDR " + " ".join(f"+{offset:X}" for offset in range(16))
    for index, dump_range in enumerate(dump_ranges):
        if index:
            lines.append("")
        lines.append(header)
        start_line = dump_range.start & ~0x0F
        end_line = dump_range.end | 0x0F
        for base in range(start_line, end_line + 1, 16):
            row = [f"{base & ADDRESS_MASK:04X}"]
            for offset in range(16):
                row.append(f"{snapshot[(base + offset) & ADDRESS_MASK]:02X}")
            lines.append(" ".join(row))
    return "\n".join(lines)


def _write_dump(snapshot: bytes, dump_ranges: Sequence[DumpRange], *, target: Path | None, fmt: str) -> None:
    ranges = _merge_ranges(dump_ranges)
    if fmt == "bin":
        data = bytearray()
        for dump_range in ranges:
            for address in dump_range.iter_addresses():
                data.append(snapshot[address])
        if target is None:
            sys.stdout.buffer.write(bytes(data))
            return
        target.write_bytes(bytes(data))
        return

    text = _format_hex_dump(snapshot, ranges)
    if target is None:
        print(text)
    else:
        target.write_text(text + "\n")


def _execute_program(
    computer: Chip8Computer,
    *,
    max_steps: int | None,
    breakpoints: Sequence[int],
    max_seconds: float | None,
    key_events: Dict[int, List[int]] | None = None,
) -> RunResult:
    """Run until a breakpoint, the step limit or the time limit.

    Breakpoints are checked before every instruction. ``key_events`` maps a
    clock count to keys that become pressed from that point on.
    """

    cpu = computer.cpu_core
    result = RunResult()
    break_set = {value & ADDRESS_MASK for value in breakpoints}
    pending = dict(key_events or {})
    deadline: float | None = None
    if max_seconds is not None and max_seconds >= 0:
        deadline = time.monotonic() + max_seconds

    while computer.running:
        if max_steps is not None and result.steps >= max_steps:
            result.limit_hit = True
            break
        for key in pending.pop(computer.clock_count, []):
            computer.keyboard.press(key)
        if break_set and cpu.registers.program_counter in break_set and cpu.awaiting_key is None:
            result.break_hit = True
            break
        result.steps += computer.tick(1)
        if deadline is not None and result.steps % EXECUTION_CHUNK == 0 and time.monotonic() >= deadline:
            result.timeout_hit = True
            break

    return result


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8emu-debug",
        description="Headless CHIP-8 runner for ROM diagnostics.",
    )
    parser.add_argument("--rom", type=str, required=True, help="Raw CHIP-8 ROM image")
    parser.add_argument("--config", type=str, default=None, help="JSON machine configuration file")
    parser.add_argument(
        "--steps",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help="Maximum instructions to execute (0 or negative disables the limit)",
    )
    parser.add_argument(
        "--break-pc",
        action="append",
        default=[],
        help="Break when PC reaches the given hex address (repeatable)",
    )
    parser.add_argument(
        "--key",
        action="append",
        default=[],
        help="Press keypad KEY (hex) once the clock reaches STEP, as KEY@STEP (repeatable)",
    )
    parser.add_argument(
        "--dump",
        type=str,
        default=None,
        help="File path for memory dump (defaults to stdout)",
    )
    parser.add_argument(
        "--dump-range",
        action="append",
        default=[],
        help="Memory range to dump in START:END hex form (inclusive). Repeat to add multiple ranges.",
    )
    parser.add_argument(
        "--dump-format",
        choices=("hex", "bin"),
        default="hex",
        help="Dump format (hex table or raw binary)",
    )
    parser.add_argument(
        "--seconds",
        type=float,
        default=None,
        help="Maximum wall-clock seconds to run before dumping memory",
    )
    parser.add_argument("--screen", action="store_true", help="Print the display as text after the run")
    parser.add_argument("--trace", action="store_true", help="Log every executed instruction")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.trace else getattr(logging, args.log_level),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    breakpoints: List[int] = []
    for spec in args.break_pc:
        try:
            breakpoints.append(_parse_hex(spec))
        except ValueError as exc:
            parser.error(f"invalid breakpoint address '{spec}': {exc}")

    dump_ranges: List[DumpRange] = []
    for spec in args.dump_range:
        try:
            dump_ranges.append(_parse_range(spec))
        except ValueError as exc:
            parser.error(f"invalid dump range '{spec}': {exc}")

    key_events: Dict[int, List[int]] = {}
    for spec in args.key:
        try:
            step, key = _parse_key_event(spec)
        except ValueError as exc:
            parser.error(f"invalid key event '{spec}': {exc}")
        key_events.setdefault(step, []).append(key)

    try:
        config = MachineConfig.load(args.config) if args.config else MachineConfig()
        config = config.with_env()
    except (OSError, ValueError) as exc:
        parser.error(f"invalid configuration: {exc}")

    computer = Chip8Computer(config)
    computer.cpu_core.trace = args.trace

    try:
        computer.load_program(args.rom)
    except ProgramLoadError as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    step_limit = args.steps if args.steps > 0 else None
    machine_error: Chip8Error | None = None
    try:
        result = _execute_program(
            computer,
            max_steps=step_limit,
            breakpoints=breakpoints,
            max_seconds=args.seconds,
            key_events=key_events,
        )
    except Chip8Error as exc:
        machine_error = exc
        result = RunResult()

    dump_target = Path(args.dump) if args.dump is not None else None
    _write_dump(computer.cpu_core.snapshot(), dump_ranges, target=dump_target, fmt=args.dump_format)
    if args.screen:
        print(computer.display.render_text(), file=sys.stderr)

    if machine_error is not None:
        print(f"Execution stopped: {machine_error}", file=sys.stderr)
        print(computer.cpu_core.describe(), file=sys.stderr)
        return EXIT_MACHINE_ERROR
    if result.break_hit:
        return EXIT_OK
    if result.timeout_hit:
        print("Execution stopped: time limit reached", file=sys.stderr)
        return EXIT_TIME_LIMIT
    if result.limit_hit:
        print("Execution stopped: step limit reached", file=sys.stderr)
        return EXIT_STEP_LIMIT
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
