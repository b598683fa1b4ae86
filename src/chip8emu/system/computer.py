"""Clocked machine scaffold: steps a CPU and dispatches scheduled events."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import heapq
import logging
from typing import Callable, List, Optional

from chip8emu.errors import Chip8Error

logger = logging.getLogger(__name__)

Action = Callable[["Computer"], None]


class MachineState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(order=True)
class ScheduledEvent:
    due: int
    seq: int
    action: Action = field(compare=False)
    label: str = field(default="", compare=False)


class EventSchedule:
    """Min-heap of events ordered by due clock, then by insertion."""

    def __init__(self) -> None:
        self._pending: List[ScheduledEvent] = []
        self._seq = 0

    def __len__(self) -> int:
        return len(self._pending)

    def schedule(self, due: int, action: Action, label: str = "") -> ScheduledEvent:
        event = ScheduledEvent(due, self._seq, action, label)
        self._seq += 1
        heapq.heappush(self._pending, event)
        return event

    def take_due(self, clock: int) -> List[ScheduledEvent]:
        due: List[ScheduledEvent] = []
        while self._pending and self._pending[0].due <= clock:
            due.append(heapq.heappop(self._pending))
        return due

    def labels(self) -> List[str]:
        return [event.label for event in sorted(self._pending)]

    def discard_all(self) -> None:
        self._pending = []


class Computer:
    """Host machine driving a CPU one instruction per clock.

    ``clock_count`` counts CPU steps since the last reset. Lifecycle requests
    (reset, pause, resume, power off) are queued as events and applied at the
    current clock. A periodic timer event fires every ``steps_per_timer_tick``
    clocks and calls :meth:`_on_timer_tick`.
    """

    def __init__(
        self,
        hardware: object,
        *,
        cpu_clock_frequency: float = 600.0,
        timer_frequency: float = 60.0,
    ) -> None:
        if cpu_clock_frequency <= 0 or timer_frequency <= 0:
            raise ValueError("frequency must be positive")
        self.hardware = hardware
        self.cpu_clock_frequency = cpu_clock_frequency
        self.timer_frequency = timer_frequency
        self.clock_count = 0
        self.last_error: Optional[Chip8Error] = None
        self.state = MachineState.STOPPED
        self._cpu: Optional[object] = None
        self._schedule = EventSchedule()
        self._timer_armed = False

    @property
    def cpu(self) -> Optional[object]:
        return self._cpu

    def set_cpu(self, cpu: object) -> None:
        self._cpu = cpu
        if hasattr(cpu, "computer"):
            cpu.computer = self

    @property
    def running(self) -> bool:
        return self.state is MachineState.RUNNING

    @property
    def steps_per_timer_tick(self) -> int:
        return max(1, round(self.cpu_clock_frequency / self.timer_frequency))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def tick(self, cycles: int) -> int:
        """Run up to ``cycles`` clocks and return how many elapsed.

        Stops early when the machine leaves the running state. A fatal CPU
        error powers the machine off and is re-raised.
        """

        elapsed = 0
        if cycles <= 0:
            return elapsed
        self._dispatch_due()
        while elapsed < cycles and self.running:
            self._step_cpu()
            self.clock_count += 1
            elapsed += 1
            self._dispatch_due()
        return elapsed

    def _step_cpu(self) -> None:
        if self._cpu is None:
            return
        if getattr(self._cpu, "awaiting_key", None) is not None:
            self._service_input()
            return
        try:
            self._cpu.step()
        except Chip8Error as exc:
            self.last_error = exc
            logger.error("machine stopped at clock %d: %s", self.clock_count, exc)
            self._halt()
            raise
        if getattr(self._cpu, "awaiting_key", None) is not None:
            self._begin_input_wait()

    def _begin_input_wait(self) -> None:
        """Called right after the CPU starts waiting for a key."""

    def _service_input(self) -> None:
        """Called once per clock while the CPU waits for a key."""

    def _on_timer_tick(self) -> None:
        """Called every ``steps_per_timer_tick`` clocks while running."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def power_on(self) -> None:
        self._restart()
        self.state = MachineState.RUNNING
        self._arm_timer()

    def power_off(self) -> None:
        if self.state is not MachineState.STOPPED:
            self._request(lambda comp: comp._halt(), "power-off")

    def reset(self) -> None:
        self._request(lambda comp: comp._restart(), "reset")

    def pause(self) -> None:
        if self.state is MachineState.RUNNING:
            self._request(lambda comp: comp._suspend(), "pause")

    def resume(self) -> None:
        if self.state is MachineState.PAUSED:
            self._request(lambda comp: comp._unsuspend(), "resume")

    def set_clock_frequency(self, frequency: float) -> None:
        if frequency <= 0:
            raise ValueError("frequency must be positive")
        self.cpu_clock_frequency = frequency
        if self.running:
            self._disarm_timer()
            self._arm_timer()

    def _restart(self) -> None:
        was_running = self.running
        self._disarm_timer()
        self.clock_count = 0
        self.last_error = None
        reset = getattr(self._cpu, "reset", None)
        if reset is not None:
            reset()
        if was_running:
            self._arm_timer()

    def _suspend(self) -> None:
        if self.running:
            self.state = MachineState.PAUSED
            self._disarm_timer()

    def _unsuspend(self) -> None:
        if not self.running:
            self.state = MachineState.RUNNING
            self._arm_timer()

    def _halt(self) -> None:
        self.state = MachineState.STOPPED
        self._disarm_timer()

    # ------------------------------------------------------------------
    # Event plumbing
    # ------------------------------------------------------------------
    def _request(self, action: Action, label: str) -> None:
        self._schedule.schedule(self.clock_count, action, label)
        self._dispatch_due()

    def _dispatch_due(self) -> None:
        for event in self._schedule.take_due(self.clock_count):
            event.action(self)

    def _arm_timer(self) -> None:
        if not self.running or self._timer_armed:
            return
        self._timer_armed = True
        self._schedule.schedule(self.clock_count + self.steps_per_timer_tick, Computer._fire_timer, "timers")

    def _disarm_timer(self) -> None:
        self._timer_armed = False
        self._schedule.discard_all()

    def _fire_timer(self) -> None:
        if not (self._timer_armed and self.running):
            return
        self._on_timer_tick()
        self._schedule.schedule(self.clock_count + self.steps_per_timer_tick, Computer._fire_timer, "timers")


__all__ = ["Computer", "EventSchedule", "MachineState", "ScheduledEvent"]
