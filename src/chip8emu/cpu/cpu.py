"""CHIP-8 fetch/decode/execute engine."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random
from typing import Callable, Dict, List, Optional

from chip8emu.chip8.font import FONT_ADDRESS, FONT_SPRITES, glyph_address
from chip8emu.cpu.instruction import Instruction, Opcode, decode
from chip8emu.cpu.stack import DEFAULT_STACK_DEPTH, CallStack
from chip8emu.errors import (
    Chip8Error,
    InputPendingError,
    MemoryAccessError,
    ProgramLoadError,
)
from chip8emu.memory import Memory, PROGRAM_START

logger = logging.getLogger(__name__)

REGISTER_COUNT = 16
FLAG = 0xF


@dataclass
class CPURegisters:
    """Register file: V0-VF, the index register and the program counter."""

    v: List[int] = field(default_factory=lambda: [0x00] * REGISTER_COUNT)
    index: int = 0
    program_counter: int = PROGRAM_START


@dataclass
class CPUTimers:
    delay: int = 0
    sound: int = 0

    def tick(self) -> None:
        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1


@dataclass
class CPUStatus:
    # Target register of a pending LD Vx, K; None when not waiting.
    awaiting_key: Optional[int] = None
    executed: int = 0
    decode_misses: int = 0


class CPU:
    """Abstract CPU bound to a host computer."""

    def __init__(self, computer: object) -> None:
        self.computer = computer

    def reset(self) -> None:
        raise NotImplementedError

    def step(self) -> None:
        raise NotImplementedError

    def execute(self, steps: int) -> int:
        raise NotImplementedError


class Chip8CPU(CPU):
    """CHIP-8 interpreter core.

    Owns memory, registers, timers and the call stack. Display and keypad are
    looked up on ``computer.hardware`` and are optional; without a display
    DRW only reports no collision, without a keypad no key is ever pressed.
    """

    def __init__(
        self,
        computer: object = None,
        *,
        stack_depth: int = DEFAULT_STACK_DEPTH,
        rng: Optional[random.Random] = None,
        couple_timers: bool = True,
    ) -> None:
        super().__init__(computer)
        self.registers = CPURegisters()
        self.timers = CPUTimers()
        self.status = CPUStatus()
        self.stack = CallStack(stack_depth)
        self.memory = self._resolve_memory()
        self.rng = rng if rng is not None else random.Random()
        self.couple_timers = couple_timers
        self.trace = False
        self._opcode_table: Dict[Opcode, Callable[[Instruction], None]] = {}
        self._init_opcode_table()
        self.reset()

    def _resolve_memory(self) -> Memory:
        hardware = getattr(self.computer, "hardware", None)
        memory = getattr(hardware, "memory", None)
        if memory is None:
            return Memory()
        return memory

    def _hardware(self, name: str) -> Optional[object]:
        hardware = getattr(self.computer, "hardware", None)
        if hardware is None:
            return None
        return getattr(hardware, name, None)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def v(self) -> List[int]:
        return self.registers.v

    @property
    def awaiting_key(self) -> Optional[int]:
        return self.status.awaiting_key

    def reset(self) -> None:
        self.registers.v[:] = [0x00] * REGISTER_COUNT
        self.registers.index = 0
        self.registers.program_counter = PROGRAM_START
        self.timers.delay = 0
        self.timers.sound = 0
        self.stack.clear()
        self.status = CPUStatus()
        self.memory.write_block(FONT_ADDRESS, FONT_SPRITES)

    def load(self, data: bytes, *, clear: bool = False) -> None:
        """Copy a ROM image to the program area. Memory is untouched on failure.

        With ``clear`` the rest of the program area is zeroed as well.
        """

        capacity = len(self.memory) - PROGRAM_START
        if len(data) > capacity:
            raise ProgramLoadError(f"program is {len(data)} bytes, only {capacity} bytes available")
        if clear:
            self.memory.write_block(PROGRAM_START, bytes(capacity))
        self.memory.write_block(PROGRAM_START, data)

    def snapshot(self) -> bytes:
        return self.memory.snapshot()

    def tick_timers(self) -> None:
        self.timers.tick()

    def provide_key(self, key: int) -> None:
        """Resolve a pending LD Vx, K with the given key."""

        if self.status.awaiting_key is None:
            raise ValueError("CPU is not waiting for a key")
        if not (0 <= key < 16):
            raise ValueError("key out of range")
        self.registers.v[self.status.awaiting_key] = key
        self.status.awaiting_key = None

    def execute(self, steps: int) -> int:
        executed = 0
        while executed < steps and self.status.awaiting_key is None:
            self.step()
            executed += 1
        return executed

    def step(self) -> None:
        if self.status.awaiting_key is not None:
            raise InputPendingError(f"waiting for key press into V{self.status.awaiting_key:X}")

        pc = self.registers.program_counter
        delay, sound = self.timers.delay, self.timers.sound
        word = self._fetch(pc)
        instruction = decode(word)

        self.registers.program_counter = pc + 2
        if self.couple_timers:
            self.timers.tick()

        if self.trace:
            logger.debug("%03X: %s", pc, instruction)
        handler = self._opcode_table[instruction.opcode]
        try:
            handler(instruction)
        except Chip8Error:
            self.registers.program_counter = pc
            self.timers.delay, self.timers.sound = delay, sound
            raise
        self.status.executed += 1

    def describe(self) -> str:
        v = " ".join(f"{value:02X}" for value in self.registers.v)
        return (
            f"pc={self.registers.program_counter:03X} i={self.registers.index:03X} "
            f"dt={self.timers.delay} st={self.timers.sound} stack={self.stack!r} v=[{v}]"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _fetch(self, address: int) -> int:
        return self.memory.load16(address)

    def _check_target(self, address: int) -> int:
        if address < 0 or address + 2 > len(self.memory):
            raise MemoryAccessError(address, 2, f"jump target 0x{address:04X} out of range")
        return address

    def _skip_if(self, condition: bool) -> None:
        if condition:
            self.registers.program_counter += 2

    def _set_with_flag(self, x: int, value: int, flag: int) -> None:
        # VF is written last so it wins when x is F.
        self.registers.v[x] = value & 0xFF
        self.registers.v[FLAG] = flag

    # ------------------------------------------------------------------
    # Opcode table
    # ------------------------------------------------------------------
    def _init_opcode_table(self) -> None:
        self._opcode_table = {
            Opcode.UNKNOWN: self._op_unknown,
            Opcode.SYS: self._op_sys,
            Opcode.CLS: self._op_cls,
            Opcode.RET: self._op_ret,
            Opcode.JP: self._op_jp,
            Opcode.CALL: self._op_call,
            Opcode.SE_VX_KK: self._op_se_vx_kk,
            Opcode.SNE_VX_KK: self._op_sne_vx_kk,
            Opcode.SE_VX_VY: self._op_se_vx_vy,
            Opcode.LD_VX_KK: self._op_ld_vx_kk,
            Opcode.ADD_VX_KK: self._op_add_vx_kk,
            Opcode.LD_VX_VY: self._op_ld_vx_vy,
            Opcode.OR_VX_VY: self._op_or_vx_vy,
            Opcode.AND_VX_VY: self._op_and_vx_vy,
            Opcode.XOR_VX_VY: self._op_xor_vx_vy,
            Opcode.ADD_VX_VY: self._op_add_vx_vy,
            Opcode.SUB_VX_VY: self._op_sub_vx_vy,
            Opcode.SHR_VX: self._op_shr_vx,
            Opcode.SUBN_VX_VY: self._op_subn_vx_vy,
            Opcode.SHL_VX: self._op_shl_vx,
            Opcode.SNE_VX_VY: self._op_sne_vx_vy,
            Opcode.LD_I_ADDR: self._op_ld_i_addr,
            Opcode.JP_V0_ADDR: self._op_jp_v0_addr,
            Opcode.RND_VX_KK: self._op_rnd_vx_kk,
            Opcode.DRW_VX_VY_N: self._op_drw,
            Opcode.SKP_VX: self._op_skp_vx,
            Opcode.SKNP_VX: self._op_sknp_vx,
            Opcode.LD_VX_DT: self._op_ld_vx_dt,
            Opcode.LD_VX_K: self._op_ld_vx_k,
            Opcode.LD_DT_VX: self._op_ld_dt_vx,
            Opcode.LD_ST_VX: self._op_ld_st_vx,
            Opcode.ADD_I_VX: self._op_add_i_vx,
            Opcode.LD_F_VX: self._op_ld_f_vx,
            Opcode.LD_B_VX: self._op_ld_b_vx,
            Opcode.LD_I_VX: self._op_ld_i_vx,
            Opcode.LD_VX_I: self._op_ld_vx_i,
        }

    # ------------------------------------------------------------------
    # Flow control
    # ------------------------------------------------------------------
    def _op_unknown(self, inst: Instruction) -> None:
        self.status.decode_misses += 1
        logger.warning(
            "attempted invalid or unsupported instruction %04X at 0x%03X, ignored",
            inst.raw,
            self.registers.program_counter - 2,
        )

    def _op_sys(self, inst: Instruction) -> None:
        logger.debug("SYS 0x%03X ignored", inst.addr)

    def _op_cls(self, inst: Instruction) -> None:
        display = self._hardware("display")
        if display is not None:
            display.clear()

    def _op_ret(self, inst: Instruction) -> None:
        self.registers.program_counter = self.stack.pop()

    def _op_jp(self, inst: Instruction) -> None:
        self.registers.program_counter = self._check_target(inst.addr)

    def _op_call(self, inst: Instruction) -> None:
        target = self._check_target(inst.addr)
        self.stack.push(self.registers.program_counter)
        self.registers.program_counter = target

    def _op_jp_v0_addr(self, inst: Instruction) -> None:
        self.registers.program_counter = self._check_target(inst.addr + self.registers.v[0x0])

    def _op_se_vx_kk(self, inst: Instruction) -> None:
        self._skip_if(self.registers.v[inst.x] == inst.kk)

    def _op_sne_vx_kk(self, inst: Instruction) -> None:
        self._skip_if(self.registers.v[inst.x] != inst.kk)

    def _op_se_vx_vy(self, inst: Instruction) -> None:
        self._skip_if(self.registers.v[inst.x] == self.registers.v[inst.y])

    def _op_sne_vx_vy(self, inst: Instruction) -> None:
        self._skip_if(self.registers.v[inst.x] != self.registers.v[inst.y])

    # ------------------------------------------------------------------
    # Register arithmetic
    # ------------------------------------------------------------------
    def _op_ld_vx_kk(self, inst: Instruction) -> None:
        self.registers.v[inst.x] = inst.kk

    def _op_add_vx_kk(self, inst: Instruction) -> None:
        self.registers.v[inst.x] = (self.registers.v[inst.x] + inst.kk) & 0xFF

    def _op_ld_vx_vy(self, inst: Instruction) -> None:
        self.registers.v[inst.x] = self.registers.v[inst.y]

    def _op_or_vx_vy(self, inst: Instruction) -> None:
        self.registers.v[inst.x] |= self.registers.v[inst.y]

    def _op_and_vx_vy(self, inst: Instruction) -> None:
        self.registers.v[inst.x] &= self.registers.v[inst.y]

    def _op_xor_vx_vy(self, inst: Instruction) -> None:
        self.registers.v[inst.x] ^= self.registers.v[inst.y]

    def _op_add_vx_vy(self, inst: Instruction) -> None:
        total = self.registers.v[inst.x] + self.registers.v[inst.y]
        self._set_with_flag(inst.x, total, 1 if total > 0xFF else 0)

    def _op_sub_vx_vy(self, inst: Instruction) -> None:
        vx = self.registers.v[inst.x]
        vy = self.registers.v[inst.y]
        self._set_with_flag(inst.x, vx - vy, 1 if vx > vy else 0)

    def _op_subn_vx_vy(self, inst: Instruction) -> None:
        vx = self.registers.v[inst.x]
        vy = self.registers.v[inst.y]
        self._set_with_flag(inst.x, vy - vx, 1 if vy > vx else 0)

    def _op_shr_vx(self, inst: Instruction) -> None:
        vx = self.registers.v[inst.x]
        self._set_with_flag(inst.x, vx >> 1, vx & 0x01)

    def _op_shl_vx(self, inst: Instruction) -> None:
        vx = self.registers.v[inst.x]
        self._set_with_flag(inst.x, vx << 1, (vx >> 7) & 0x01)

    def _op_rnd_vx_kk(self, inst: Instruction) -> None:
        self.registers.v[inst.x] = self.rng.randrange(256) & inst.kk

    # ------------------------------------------------------------------
    # Index register and memory
    # ------------------------------------------------------------------
    def _op_ld_i_addr(self, inst: Instruction) -> None:
        self.registers.index = inst.addr

    def _op_add_i_vx(self, inst: Instruction) -> None:
        self.registers.index = (self.registers.index + self.registers.v[inst.x]) & 0xFFFF

    def _op_ld_f_vx(self, inst: Instruction) -> None:
        self.registers.index = glyph_address(self.registers.v[inst.x])

    def _op_ld_b_vx(self, inst: Instruction) -> None:
        value = self.registers.v[inst.x]
        self.memory.write_block(self.registers.index, (value // 100, (value // 10) % 10, value % 10))

    def _op_ld_i_vx(self, inst: Instruction) -> None:
        self.memory.write_block(self.registers.index, self.registers.v[:inst.x + 1])

    def _op_ld_vx_i(self, inst: Instruction) -> None:
        values = self.memory.read_block(self.registers.index, inst.x + 1)
        self.registers.v[:inst.x + 1] = list(values)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    def _op_ld_vx_dt(self, inst: Instruction) -> None:
        self.registers.v[inst.x] = self.timers.delay & 0xFF

    def _op_ld_dt_vx(self, inst: Instruction) -> None:
        self.timers.delay = self.registers.v[inst.x]

    def _op_ld_st_vx(self, inst: Instruction) -> None:
        self.timers.sound = self.registers.v[inst.x]

    # ------------------------------------------------------------------
    # Display and keypad collaborators
    # ------------------------------------------------------------------
    def _op_drw(self, inst: Instruction) -> None:
        rows = self.memory.read_block(self.registers.index, inst.n)
        display = self._hardware("display")
        collision = False
        if display is not None and rows:
            collision = display.draw_sprite(self.registers.v[inst.x], self.registers.v[inst.y], rows)
        self.registers.v[FLAG] = 1 if collision else 0

    def _key_pressed(self, key: int) -> bool:
        keyboard = self._hardware("keyboard")
        if keyboard is None:
            return False
        return bool(keyboard.is_pressed(key & 0x0F))

    def _op_skp_vx(self, inst: Instruction) -> None:
        self._skip_if(self._key_pressed(self.registers.v[inst.x]))

    def _op_sknp_vx(self, inst: Instruction) -> None:
        self._skip_if(not self._key_pressed(self.registers.v[inst.x]))

    def _op_ld_vx_k(self, inst: Instruction) -> None:
        self.status.awaiting_key = inst.x


__all__ = [
    "CPU",
    "CPURegisters",
    "CPUStatus",
    "CPUTimers",
    "Chip8CPU",
]
