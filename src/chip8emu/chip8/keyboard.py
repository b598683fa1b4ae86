"""16-key hexadecimal keypad."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

KEY_COUNT = 16


@dataclass
class Chip8Keyboard:
    """Pressed state for keys 0x0-0xF.

    Physical layout::

        1 2 3 C
        4 5 6 D
        7 8 9 E
        A 0 B F
    """

    _pressed: List[bool] = field(default_factory=lambda: [False] * KEY_COUNT)

    @staticmethod
    def _check(key: int) -> None:
        if not (0 <= key < KEY_COUNT):
            raise ValueError("key out of range")

    def press(self, key: int) -> None:
        self._check(key)
        self._pressed[key] = True

    def release(self, key: int) -> None:
        self._check(key)
        self._pressed[key] = False

    def is_pressed(self, key: int) -> bool:
        self._check(key)
        return self._pressed[key]

    def first_pressed(self) -> Optional[int]:
        for key, pressed in enumerate(self._pressed):
            if pressed:
                return key
        return None

    def get_pressed(self) -> List[int]:
        return [key for key, pressed in enumerate(self._pressed) if pressed]

    def clear(self) -> None:
        self._pressed = [False] * KEY_COUNT
