"""Bounded return-address stack."""

from __future__ import annotations

from typing import List

from chip8emu.errors import StackOverflowError, StackUnderflowError

DEFAULT_STACK_DEPTH = 16


class CallStack:
    """LIFO of saved program counters with a fixed capacity."""

    def __init__(self, capacity: int = DEFAULT_STACK_DEPTH) -> None:
        if capacity <= 0:
            raise ValueError("stack capacity must be positive")
        self._capacity = capacity
        self._buffer: List[int] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def depth(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def is_full(self) -> bool:
        return len(self._buffer) >= self._capacity

    def push(self, value: int) -> int:
        if self.is_full():
            raise StackOverflowError(f"call stack overflow (capacity {self._capacity})")
        self._buffer.append(value)
        return len(self._buffer)

    def pop(self) -> int:
        if not self._buffer:
            raise StackUnderflowError("return with empty call stack")
        return self._buffer.pop()

    def peek(self) -> int:
        if not self._buffer:
            raise StackUnderflowError("peek on empty call stack")
        return self._buffer[-1]

    def clear(self) -> None:
        self._buffer.clear()

    def to_list(self) -> List[int]:
        return list(self._buffer)

    def __repr__(self) -> str:
        return "[" + ", ".join(f"0x{value:03X}" for value in self._buffer) + "]"
