"""Error taxonomy shared by the CPU core and its collaborators."""

from __future__ import annotations


class Chip8Error(RuntimeError):
    """Base class for fatal machine conditions."""


class StackOverflowError(Chip8Error):
    """Raised when CALL is executed with a full call stack."""


class StackUnderflowError(Chip8Error):
    """Raised when RET is executed with an empty call stack."""


class MemoryAccessError(Chip8Error):
    """Raised for any memory access or jump target outside the address space."""

    def __init__(self, address: int, length: int = 1, message: str | None = None) -> None:
        self.address = address
        self.length = length
        if message is None:
            if length == 1:
                message = f"memory access out of bounds at 0x{address:04X}"
            else:
                message = f"memory access out of bounds at 0x{address:04X} (+{length} bytes)"
        super().__init__(message)


class InputPendingError(Chip8Error):
    """Raised when stepping a CPU that is still waiting for a key press."""


class ProgramLoadError(Chip8Error):
    """Raised when a ROM image cannot be read or does not fit in memory."""


__all__ = [
    "Chip8Error",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryAccessError",
    "InputPendingError",
    "ProgramLoadError",
]
