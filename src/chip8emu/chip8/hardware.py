"""CHIP-8 hardware bundle handed to the CPU core."""

from __future__ import annotations

from dataclasses import dataclass

from chip8emu.chip8.display import Chip8Display
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.chip8.sound import Chip8SoundProcessor
from chip8emu.memory import Memory


@dataclass
class Chip8Hardware:
    memory: Memory
    display: Chip8Display
    keyboard: Chip8Keyboard
    sound_processor: Chip8SoundProcessor
