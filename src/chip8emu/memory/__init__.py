"""Flat 4 KiB memory with strict bounds checking."""

from __future__ import annotations

from typing import Iterable, Protocol

from chip8emu.errors import MemoryAccessError

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200


class Addressable(Protocol):
    """Protocol describing what the CPU needs from its memory."""

    def load8(self, address: int) -> int:
        ...

    def store8(self, address: int, value: int) -> None:
        ...

    def load16(self, address: int) -> int:
        ...

    def read_block(self, address: int, length: int) -> bytes:
        ...

    def write_block(self, address: int, data: Iterable[int]) -> None:
        ...

    def snapshot(self) -> bytes:
        ...


class Memory(Addressable):
    """Byte-addressable RAM. Out-of-range accesses raise instead of wrapping."""

    size: int
    data: bytearray

    def __init__(self, size: int = MEMORY_SIZE) -> None:
        if size <= 0 or size > 0x10000:
            raise ValueError("invalid memory size")
        self.size = size
        self.data = bytearray(size)

    def __len__(self) -> int:
        return self.size

    def _check(self, address: int, length: int = 1) -> None:
        if length < 0 or address < 0 or address + length > self.size:
            raise MemoryAccessError(address, length)

    def load8(self, address: int) -> int:
        self._check(address)
        return self.data[address]

    def store8(self, address: int, value: int) -> None:
        self._check(address)
        self.data[address] = value & 0xFF

    def load16(self, address: int) -> int:
        self._check(address, 2)
        return (self.data[address] << 8) | self.data[address + 1]

    def store16(self, address: int, value: int) -> None:
        self._check(address, 2)
        self.data[address] = (value >> 8) & 0xFF
        self.data[address + 1] = value & 0xFF

    def read_block(self, address: int, length: int) -> bytes:
        self._check(address, length)
        return bytes(self.data[address:address + length])

    def write_block(self, address: int, data: Iterable[int]) -> None:
        values = bytes(value & 0xFF for value in data)
        self._check(address, len(values))
        self.data[address:address + len(values)] = values

    def clear(self) -> None:
        self.data[:] = bytes(self.size)

    def snapshot(self) -> bytes:
        return bytes(self.data)


__all__ = [
    "Addressable",
    "Memory",
    "MEMORY_SIZE",
    "PROGRAM_START",
]
