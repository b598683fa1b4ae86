"""Instruction decoding for the CHIP-8 16-bit instruction word."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class Opcode(Enum):
    UNKNOWN = auto()
    SYS = auto()
    CLS = auto()
    RET = auto()
    JP = auto()
    CALL = auto()
    SE_VX_KK = auto()
    SNE_VX_KK = auto()
    SE_VX_VY = auto()
    LD_VX_KK = auto()
    ADD_VX_KK = auto()
    LD_VX_VY = auto()
    OR_VX_VY = auto()
    AND_VX_VY = auto()
    XOR_VX_VY = auto()
    ADD_VX_VY = auto()
    SUB_VX_VY = auto()
    SHR_VX = auto()
    SUBN_VX_VY = auto()
    SHL_VX = auto()
    SNE_VX_VY = auto()
    LD_I_ADDR = auto()
    JP_V0_ADDR = auto()
    RND_VX_KK = auto()
    DRW_VX_VY_N = auto()
    SKP_VX = auto()
    SKNP_VX = auto()
    LD_VX_DT = auto()
    LD_VX_K = auto()
    LD_DT_VX = auto()
    LD_ST_VX = auto()
    ADD_I_VX = auto()
    LD_F_VX = auto()
    LD_B_VX = auto()
    LD_I_VX = auto()
    LD_VX_I = auto()

    @property
    def mnemonic(self) -> str:
        if self is Opcode.UNKNOWN:
            return "???"
        return self.name.split("_", 1)[0]


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction word.

    Only the operands relevant to ``opcode`` are meaningful, but all fields
    are always populated from ``raw`` so two decodes of the same word compare
    equal.
    """

    opcode: Opcode
    raw: int
    x: int = 0
    y: int = 0
    kk: int = 0
    n: int = 0
    addr: int = 0

    def mnemonic(self) -> str:
        formatter = _FORMATTERS.get(self.opcode)
        if formatter is None:
            return self.opcode.mnemonic
        return f"{self.opcode.mnemonic} {formatter(self)}"

    def __str__(self) -> str:
        return f"{self.raw:04X} {self.mnemonic()}"


_FORMATTERS: Dict[Opcode, Callable[[Instruction], str]] = {
    Opcode.UNKNOWN: lambda i: f"0x{i.raw:04X}",
    Opcode.SYS: lambda i: f"0x{i.addr:03X}",
    Opcode.JP: lambda i: f"0x{i.addr:03X}",
    Opcode.CALL: lambda i: f"0x{i.addr:03X}",
    Opcode.SE_VX_KK: lambda i: f"V{i.x:X}, 0x{i.kk:02X}",
    Opcode.SNE_VX_KK: lambda i: f"V{i.x:X}, 0x{i.kk:02X}",
    Opcode.SE_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.LD_VX_KK: lambda i: f"V{i.x:X}, 0x{i.kk:02X}",
    Opcode.ADD_VX_KK: lambda i: f"V{i.x:X}, 0x{i.kk:02X}",
    Opcode.LD_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.OR_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.AND_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.XOR_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.ADD_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.SUB_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.SHR_VX: lambda i: f"V{i.x:X}",
    Opcode.SUBN_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.SHL_VX: lambda i: f"V{i.x:X}",
    Opcode.SNE_VX_VY: lambda i: f"V{i.x:X}, V{i.y:X}",
    Opcode.LD_I_ADDR: lambda i: f"I, 0x{i.addr:03X}",
    Opcode.JP_V0_ADDR: lambda i: f"V0, 0x{i.addr:03X}",
    Opcode.RND_VX_KK: lambda i: f"V{i.x:X}, 0x{i.kk:02X}",
    Opcode.DRW_VX_VY_N: lambda i: f"V{i.x:X}, V{i.y:X}, {i.n}",
    Opcode.SKP_VX: lambda i: f"V{i.x:X}",
    Opcode.SKNP_VX: lambda i: f"V{i.x:X}",
    Opcode.LD_VX_DT: lambda i: f"V{i.x:X}, DT",
    Opcode.LD_VX_K: lambda i: f"V{i.x:X}, K",
    Opcode.LD_DT_VX: lambda i: f"DT, V{i.x:X}",
    Opcode.LD_ST_VX: lambda i: f"ST, V{i.x:X}",
    Opcode.ADD_I_VX: lambda i: f"I, V{i.x:X}",
    Opcode.LD_F_VX: lambda i: f"F, V{i.x:X}",
    Opcode.LD_B_VX: lambda i: f"B, V{i.x:X}",
    Opcode.LD_I_VX: lambda i: f"[I], V{i.x:X}",
    Opcode.LD_VX_I: lambda i: f"V{i.x:X}, [I]",
}

# Families fully identified by the high nibble.
_FAMILY_TABLE: Dict[int, Opcode] = {
    0x1: Opcode.JP,
    0x2: Opcode.CALL,
    0x3: Opcode.SE_VX_KK,
    0x4: Opcode.SNE_VX_KK,
    0x6: Opcode.LD_VX_KK,
    0x7: Opcode.ADD_VX_KK,
    0xA: Opcode.LD_I_ADDR,
    0xB: Opcode.JP_V0_ADDR,
    0xC: Opcode.RND_VX_KK,
    0xD: Opcode.DRW_VX_VY_N,
}

# Family 0x8 is keyed by the low nibble.
_ALU_TABLE: Dict[int, Opcode] = {
    0x0: Opcode.LD_VX_VY,
    0x1: Opcode.OR_VX_VY,
    0x2: Opcode.AND_VX_VY,
    0x3: Opcode.XOR_VX_VY,
    0x4: Opcode.ADD_VX_VY,
    0x5: Opcode.SUB_VX_VY,
    0x6: Opcode.SHR_VX,
    0x7: Opcode.SUBN_VX_VY,
    0xE: Opcode.SHL_VX,
}

# Families 0x0, 0xE and 0xF are keyed by the low byte.
_BYTE_TABLES: Dict[int, Dict[int, Opcode]] = {
    0x0: {
        0xE0: Opcode.CLS,
        0xEE: Opcode.RET,
    },
    0xE: {
        0x9E: Opcode.SKP_VX,
        0xA1: Opcode.SKNP_VX,
    },
    0xF: {
        0x07: Opcode.LD_VX_DT,
        0x0A: Opcode.LD_VX_K,
        0x15: Opcode.LD_DT_VX,
        0x18: Opcode.LD_ST_VX,
        0x1E: Opcode.ADD_I_VX,
        0x29: Opcode.LD_F_VX,
        0x33: Opcode.LD_B_VX,
        0x55: Opcode.LD_I_VX,
        0x65: Opcode.LD_VX_I,
    },
}


def decode(word: int) -> Instruction:
    """Decode a 16-bit instruction word. Never raises."""

    word &= 0xFFFF
    family = word >> 12
    x = (word >> 8) & 0x0F
    y = (word >> 4) & 0x0F
    kk = word & 0x00FF
    n = word & 0x000F
    addr = word & 0x0FFF

    opcode = _FAMILY_TABLE.get(family)
    if opcode is None:
        if family == 0x8:
            opcode = _ALU_TABLE.get(n, Opcode.UNKNOWN)
        elif family == 0x5:
            opcode = Opcode.SE_VX_VY if n == 0 else Opcode.UNKNOWN
        elif family == 0x9:
            opcode = Opcode.SNE_VX_VY if n == 0 else Opcode.UNKNOWN
        elif family == 0x0:
            opcode = _BYTE_TABLES[0x0].get(kk, Opcode.SYS) if x == 0 else Opcode.SYS
        else:
            opcode = _BYTE_TABLES[family].get(kk, Opcode.UNKNOWN)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "decode raw=%04X family=%X x=%X y=%X kk=%02X addr=%03X -> %s",
            word, family, x, y, kk, addr, opcode.name,
        )
    return Instruction(opcode, word, x, y, kk, n, addr)


__all__ = ["Opcode", "Instruction", "decode"]
