"""CHIP-8 system wiring."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import random
from typing import Optional, Set

from chip8emu.chip8.display import Chip8Display
from chip8emu.chip8.hardware import Chip8Hardware
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.chip8.sound import Chip8SoundProcessor
from chip8emu.config import MachineConfig
from chip8emu.cpu.cpu import Chip8CPU
from chip8emu.emulator.file import RomImage, dump_memory, load_rom
from chip8emu.memory import Memory
from chip8emu.system.computer import Computer

logger = logging.getLogger(__name__)


class Chip8Computer(Computer):
    """Concrete CHIP-8 machine: memory, CPU, display, keypad and beeper."""

    def __init__(self, config: Optional[MachineConfig] = None) -> None:
        self.config = config if config is not None else MachineConfig()
        memory = Memory()
        hardware = Chip8Hardware(
            memory=memory,
            display=Chip8Display(),
            keyboard=Chip8Keyboard(),
            sound_processor=Chip8SoundProcessor(enable_audio=self.config.enable_audio),
        )
        super().__init__(
            hardware,
            cpu_clock_frequency=float(self.config.cpu_hz),
            timer_frequency=float(self.config.timer_hz),
        )
        self.rom: Optional[RomImage] = None
        # Keys already held when the CPU began waiting; they must be released
        # and pressed again to satisfy LD Vx, K.
        self._keys_held_at_wait: Set[int] = set()
        self.cpu_core = Chip8CPU(
            self,
            stack_depth=self.config.stack_depth,
            rng=random.Random(self.config.seed),
            couple_timers=self.config.couple_timers,
        )
        self.set_cpu(self.cpu_core)

    @property
    def memory(self) -> Memory:
        return self.hardware.memory

    @property
    def display(self) -> Chip8Display:
        return self.hardware.display

    @property
    def keyboard(self) -> Chip8Keyboard:
        return self.hardware.keyboard

    @property
    def sound_processor(self) -> Chip8SoundProcessor:
        return self.hardware.sound_processor

    # ------------------------------------------------------------------
    # Program loading
    # ------------------------------------------------------------------
    def load_program(self, path: str | os.PathLike[str]) -> RomImage:
        image = load_rom(path)
        self._install(image)
        return image

    def load_bytes(self, data: bytes, name: str = "ROM") -> RomImage:
        image = RomImage(name=name, data=bytes(data))
        self._install(image)
        return image

    def _install(self, image: RomImage) -> None:
        self.cpu_core.load(image.data, clear=True)
        self.rom = image
        logger.info("loaded %s (%d bytes)", image.name, image.size)
        self.power_on()

    def dump_memory(self, directory: str | os.PathLike[str]) -> Path:
        target = dump_memory(self.cpu_core.snapshot(), directory)
        logger.info("memory dumped to %s", target)
        return target

    # ------------------------------------------------------------------
    # Scheduling hooks
    # ------------------------------------------------------------------
    def _restart(self) -> None:
        super()._restart()
        self.hardware.display.clear()
        self.hardware.keyboard.clear()
        self._keys_held_at_wait = set()

    def _begin_input_wait(self) -> None:
        self._keys_held_at_wait = set(self.hardware.keyboard.get_pressed())

    def _service_input(self) -> None:
        pressed = set(self.hardware.keyboard.get_pressed())
        fresh = sorted(pressed - self._keys_held_at_wait)
        # A held key counts again once it has been released.
        self._keys_held_at_wait &= pressed
        if fresh:
            self._keys_held_at_wait = set()
            self.cpu_core.provide_key(fresh[0])

    def _on_timer_tick(self) -> None:
        if not self.cpu_core.couple_timers:
            self.cpu_core.tick_timers()
        self.hardware.sound_processor.update(self.cpu_core.timers.sound)
