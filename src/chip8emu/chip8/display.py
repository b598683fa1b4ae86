"""CHIP-8 monochrome framebuffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Iterable, List

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32


@dataclass
class Chip8Display:
    WIDTH: ClassVar[int] = SCREEN_WIDTH
    HEIGHT: ClassVar[int] = SCREEN_HEIGHT

    foreground: int = 0xFFFFFF
    background: int = 0x000000
    pixels: List[List[int]] = field(default_factory=lambda: [[0] * SCREEN_WIDTH for _ in range(SCREEN_HEIGHT)])
    dirty: bool = True

    def clear(self) -> None:
        for row in self.pixels:
            row[:] = [0] * self.WIDTH
        self.dirty = True

    def draw_sprite(self, x: int, y: int, rows: Iterable[int]) -> bool:
        """XOR an 8-pixel-wide sprite onto the screen.

        The origin wraps around the screen; pixels that run past the right or
        bottom edge are clipped. Returns True if any lit pixel was turned off.
        """

        origin_x = x % self.WIDTH
        origin_y = y % self.HEIGHT
        collision = False
        for line, value in enumerate(rows):
            row_index = origin_y + line
            if row_index >= self.HEIGHT:
                break
            row = self.pixels[row_index]
            for bit in range(8):
                if not (value >> (7 - bit)) & 0x01:
                    continue
                col = origin_x + bit
                if col >= self.WIDTH:
                    break
                if row[col]:
                    collision = True
                row[col] ^= 1
        self.dirty = True
        return collision

    def get_pixel(self, x: int, y: int) -> int:
        if not (0 <= x < self.WIDTH and 0 <= y < self.HEIGHT):
            raise ValueError("pixel coordinate out of range")
        return self.pixels[y][x]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_pixels(self) -> List[List[int]]:
        return [
            [self.foreground if lit else self.background for lit in row]
            for row in self.pixels
        ]

    def render_text(self, on: str = "#", off: str = ".") -> str:
        return "\n".join("".join(on if lit else off for lit in row) for row in self.pixels)

    def render_pygame_surface(self, scaling: int = 1):
        """Render the framebuffer into a pygame Surface.

        Parameters
        ----------
        scaling:
            Integer scale factor applied to both axes.

        Raises
        ------
        RuntimeError
            If pygame is not available.
        """

        if scaling <= 0:
            raise ValueError("scaling factor must be positive")

        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required for render_pygame_surface") from exc

        surface = pygame.Surface((self.WIDTH * scaling, self.HEIGHT * scaling))
        surface.fill(self.background)
        for y, row in enumerate(self.pixels):
            for x, lit in enumerate(row):
                if lit:
                    surface.fill(self.foreground, (x * scaling, y * scaling, scaling, scaling))
        self.dirty = False
        return surface
