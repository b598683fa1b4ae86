"""Sound-timer driven beeper with optional pygame playback."""

from __future__ import annotations

from array import array
from dataclasses import dataclass, field
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


@dataclass
class Chip8SoundProcessor:
    """Emits a square-wave tone while the sound timer is non-zero."""

    history: List[Tuple[str, Tuple[int, ...]]] = field(default_factory=list)
    sample_rate: int = 44100
    frequency: float = 440.0
    volume: float = 0.3
    enable_audio: bool = False

    def __post_init__(self) -> None:
        self._playing: bool = False
        self._audio_initialized: bool = False
        self._channel = None
        self._sound = None

    @property
    def playing(self) -> bool:
        return self._playing

    def update(self, sound_timer: int) -> None:
        """Observe the sound timer once per timer tick."""

        if sound_timer > 0 and not self._playing:
            self.set_line_on()
        elif sound_timer == 0 and self._playing:
            self.set_line_off()

    def set_line_on(self) -> None:
        self.history.append(("set_line_on", tuple()))
        self._playing = True
        if not self._ensure_mixer():
            return
        self._channel.set_volume(self.volume)
        self._channel.play(self._sound, loops=-1)

    def set_line_off(self) -> None:
        self.history.append(("set_line_off", tuple()))
        self._playing = False
        if self._audio_initialized and self._channel is not None:
            self._channel.stop()

    # ------------------------------------------------------------------
    # Audio control helpers
    # ------------------------------------------------------------------
    def _ensure_mixer(self) -> bool:
        if not self.enable_audio:
            return False
        if self._audio_initialized:
            return True
        try:
            import pygame  # type: ignore

            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=1)
            self._channel = pygame.mixer.Channel(0)
            self._sound = pygame.mixer.Sound(buffer=self._render_period())
            self._audio_initialized = True
        except Exception as exc:
            logger.warning("audio disabled: %s", exc)
            self.enable_audio = False
            self._channel = None
            self._sound = None
            self._audio_initialized = False
        return self._audio_initialized

    def _render_period(self) -> array:
        samples_per_cycle = max(2, int(self.sample_rate / self.frequency))
        half = samples_per_cycle // 2
        amplitude = int(self.volume * 32767)
        buffer = array("h")
        buffer.extend([amplitude] * half)
        buffer.extend([-amplitude] * (samples_per_cycle - half))
        return buffer
