"""Machine configuration with JSON persistence and environment overrides."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
import json
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

ENV_PREFIX = "CHIP8EMU_"

# Host key name (pygame.key.name) -> keypad value.
#
#   1 2 3 4      1 2 3 C
#   q w e r  ->  4 5 6 D
#   a s d f      7 8 9 E
#   z x c v      A 0 B F
DEFAULT_KEYMAP: Dict[str, int] = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "q": 0x4, "w": 0x5, "e": 0x6, "r": 0xD,
    "a": 0x7, "s": 0x8, "d": 0x9, "f": 0xE,
    "z": 0xA, "x": 0x0, "c": 0xB, "v": 0xF,
}


@dataclass
class MachineConfig:
    """Tunable parameters for a CHIP-8 machine and its front end."""

    cpu_hz: int = 600
    timer_hz: int = 60
    stack_depth: int = 16
    scale: int = 10
    enable_audio: bool = False
    seed: Optional[int] = None
    couple_timers: bool = False
    keymap: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_KEYMAP))

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        for name in _INT_FIELDS:
            if not _is_int(getattr(self, name)):
                raise ValueError(f"{name} must be an integer")
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false")
        if self.seed is not None and not _is_int(self.seed):
            raise ValueError("seed must be an integer or null")
        if not isinstance(self.keymap, dict):
            raise ValueError("keymap must be a mapping of key names to keypad values")
        if self.cpu_hz <= 0:
            raise ValueError("cpu_hz must be positive")
        if self.timer_hz <= 0:
            raise ValueError("timer_hz must be positive")
        if self.stack_depth <= 0:
            raise ValueError("stack_depth must be positive")
        if self.scale <= 0:
            raise ValueError("scale must be positive")
        for name, key in self.keymap.items():
            if not _is_int(key) or not (0 <= key < 16):
                raise ValueError(f"keymap entry {name!r} maps to invalid key {key}")

    @property
    def steps_per_timer_tick(self) -> int:
        return max(1, round(self.cpu_hz / self.timer_hz))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "MachineConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown configuration keys: {', '.join(sorted(unknown))}")
        values = dict(data)
        keymap = values.get("keymap")
        if isinstance(keymap, Mapping):
            values["keymap"] = {str(k): v for k, v in keymap.items()}
        return cls(**values)

    def save(self, path: str | Path) -> None:
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)

    @classmethod
    def load(cls, path: str | Path) -> "MachineConfig":
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError("configuration file must contain a JSON object")
        return cls.from_dict(data)

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "MachineConfig":
        """Return a copy with ``CHIP8EMU_*`` environment variables applied."""

        env = os.environ if environ is None else environ
        values = self.to_dict()
        for name, parser in _ENV_PARSERS.items():
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                values[name] = parser(raw)
            except ValueError as exc:
                raise ValueError(f"invalid {ENV_PREFIX}{name.upper()}={raw!r}") from exc
        return MachineConfig.from_dict(values)


_INT_FIELDS = ("cpu_hz", "timer_hz", "stack_depth", "scale")
_BOOL_FIELDS = ("enable_audio", "couple_timers")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value}")


_ENV_PARSERS = {
    "cpu_hz": int,
    "timer_hz": int,
    "stack_depth": int,
    "scale": int,
    "enable_audio": _parse_bool,
    "seed": int,
    "couple_timers": _parse_bool,
}


__all__ = ["DEFAULT_KEYMAP", "ENV_PREFIX", "MachineConfig"]
