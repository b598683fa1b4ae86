"""ROM image loading for CHIP-8 programs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from chip8emu.errors import ProgramLoadError
from chip8emu.memory import MEMORY_SIZE, PROGRAM_START

MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START


@dataclass(frozen=True)
class RomImage:
    name: str
    data: bytes
    path: Optional[Path] = None

    @property
    def size(self) -> int:
        return len(self.data)


def load_rom(path: str | Path) -> RomImage:
    """Read a raw ROM image. The file has no header; bytes load at 0x200."""

    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise ProgramLoadError(f"cannot read ROM {file_path}: {exc.strerror or exc}") from exc
    if not data:
        raise ProgramLoadError(f"ROM {file_path} is empty")
    if len(data) > MAX_ROM_SIZE:
        raise ProgramLoadError(
            f"ROM {file_path} is {len(data)} bytes, exceeds {MAX_ROM_SIZE} bytes of program memory"
        )
    return RomImage(name=file_path.stem.upper(), data=data, path=file_path)
