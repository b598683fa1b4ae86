"""CHIP-8 emulator pygame front end."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Dict, Iterable, Optional

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.config import MachineConfig
from chip8emu.errors import Chip8Error, ProgramLoadError

logger = logging.getLogger(__name__)

BASE_CAPTION = "CHIP-8"
FPS = 60
DEFAULT_DUMP_DIR = Path("dumps")

EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_MACHINE_ERROR = 2


def _handle_key_event(keyboard: Chip8Keyboard, keymap: Dict[str, int], name: str, pressed: bool) -> None:
    key = keymap.get(name)
    if key is None:
        return
    if pressed:
        keyboard.press(key)
    else:
        keyboard.release(key)


def _build_caption(computer: Chip8Computer, paused: bool) -> str:
    caption = BASE_CAPTION
    if computer.rom is not None:
        caption = f"{caption} | {computer.rom.name}"
    if paused:
        caption = f"{caption} | Paused"
    return caption


def _pygame_loop(computer: Chip8Computer, config: MachineConfig, *, dump_dir: Optional[Path]) -> int:
    import pygame  # type: ignore

    display = computer.display
    keyboard = computer.keyboard
    steps_per_frame = max(1, config.cpu_hz // FPS)

    pygame.init()
    screen = pygame.display.set_mode((display.WIDTH * config.scale, display.HEIGHT * config.scale))
    pygame.display.set_caption(_build_caption(computer, False))
    clock = pygame.time.Clock()

    exit_code = EXIT_OK
    running = True
    paused = False
    try:
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                    continue
                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                        continue
                    if event.key == pygame.K_p:
                        paused = not paused
                        if paused:
                            computer.pause()
                        else:
                            computer.resume()
                        pygame.display.set_caption(_build_caption(computer, paused))
                        continue
                    if event.key == pygame.K_F5:
                        computer.reset()
                        continue
                    if event.key == pygame.K_F12:
                        computer.dump_memory(dump_dir or DEFAULT_DUMP_DIR)
                        continue
                    _handle_key_event(keyboard, config.keymap, pygame.key.name(event.key), True)
                elif event.type == pygame.KEYUP:
                    _handle_key_event(keyboard, config.keymap, pygame.key.name(event.key), False)

            if not paused:
                try:
                    computer.tick(steps_per_frame)
                except Chip8Error as exc:
                    print(f"Execution stopped: {exc}", file=sys.stderr)
                    print(computer.cpu_core.describe(), file=sys.stderr)
                    exit_code = EXIT_MACHINE_ERROR
                    running = False

            if display.dirty:
                screen.blit(display.render_pygame_surface(config.scale), (0, 0))
                pygame.display.flip()
            clock.tick(FPS)
    finally:
        computer.sound_processor.set_line_off()
        if dump_dir is not None:
            computer.dump_memory(dump_dir)
        pygame.quit()
    return exit_code


def _resolve_config(args: argparse.Namespace) -> MachineConfig:
    config = MachineConfig.load(args.config) if args.config else MachineConfig()
    config = config.with_env()
    overrides = {}
    if args.scale is not None:
        overrides["scale"] = args.scale
    if args.cpu_hz is not None:
        overrides["cpu_hz"] = args.cpu_hz
    if args.timer_hz is not None:
        overrides["timer_hz"] = args.timer_hz
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.audio is not None:
        overrides["enable_audio"] = args.audio
    if overrides:
        values = config.to_dict()
        values.update(overrides)
        config = MachineConfig.from_dict(values)
    return config


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chip8emu", description="CHIP-8 emulator")
    parser.add_argument("rom", help="Path to a raw CHIP-8 ROM image")
    parser.add_argument("--config", default=None, help="JSON machine configuration file")
    parser.add_argument("--scale", type=int, default=None, help="Integer scaling factor for the display")
    parser.add_argument("--cpu-hz", type=int, default=None, help="Instructions executed per second")
    parser.add_argument("--timer-hz", type=int, default=None, help="Delay/sound timer rate")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the RND instruction")
    parser.add_argument(
        "--audio",
        dest="audio",
        action="store_true",
        help="Enable square-wave audio output (requires pygame mixer)",
    )
    parser.add_argument(
        "--no-audio",
        dest="audio",
        action="store_false",
        help="Force audio output off even if the configuration enables it",
    )
    parser.set_defaults(audio=None)
    parser.add_argument(
        "--dump-on-exit",
        metavar="DIR",
        default=None,
        help="Write a raw memory dump to DIR when the emulator exits (F12 dumps on demand)",
    )
    parser.add_argument("--trace", action="store_true", help="Log every executed instruction")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.trace else getattr(logging, args.log_level),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = _resolve_config(args)
    except (OSError, ValueError) as exc:
        parser.error(f"invalid configuration: {exc}")

    computer = Chip8Computer(config)
    computer.cpu_core.trace = args.trace
    try:
        computer.load_program(args.rom)
    except ProgramLoadError as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    dump_dir = Path(args.dump_on_exit) if args.dump_on_exit else None
    try:
        return _pygame_loop(computer, config, dump_dir=dump_dir)
    except ImportError as exc:
        raise SystemExit(f"pygame is required for the emulator window: {exc}")


if __name__ == "__main__":
    raise SystemExit(main())
