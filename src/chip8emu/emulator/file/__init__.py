"""File loading helpers for the CHIP-8 emulator."""

from chip8emu.emulator.file.dump import dump_memory
from chip8emu.emulator.file.program import MAX_ROM_SIZE, RomImage, load_rom
from chip8emu.errors import ProgramLoadError

__all__ = [
    "MAX_ROM_SIZE",
    "ProgramLoadError",
    "RomImage",
    "dump_memory",
    "load_rom",
]
