"""
Instruction decoder and disassembler for the CHIP-8.

Every CHIP-8 instruction is one big-endian 16-bit word.  The top nibble
selects the family; the remaining bits are operands:

=====  ==========  ================
Field  Bits        Meaning
=====  ==========  ================
X      8-11        register index
Y      4-7         register index
N      0-3         4-bit immediate
NN     0-7         8-bit immediate
NNN    0-11        12-bit address
=====  ==========  ================

:func:`decode` turns a word into an :class:`Instruction` whose ``op`` is one
:class:`~chip8vm.core.types.Op` variant.  Words that match no canonical
pattern decode to ``Op.UNKNOWN``; the decoder itself never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from chip8vm.core.types import Op

# Families whose low bits fully determine the variant.
_FAMILY_OPS: dict[int, Op] = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_VX_NN,
    0x4: Op.SNE_VX_NN,
    0x6: Op.LD_VX_NN,
    0x7: Op.ADD_VX_NN,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# 8XYn, keyed by n.
_ALU_OPS: dict[int, Op] = {
    0x0: Op.LD_VX_VY,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_VX_VY,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# EXnn, keyed by nn.
_KEY_OPS: dict[int, Op] = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# FXnn, keyed by nn.
_MISC_OPS: dict[int, Op] = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I_VX,
    0x29: Op.LD_F_VX,
    0x33: Op.LD_B_VX,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}


@dataclass(frozen=True)
class Instruction:
    """A decoded CHIP-8 instruction with all operand fields extracted."""

    op: Op
    raw: int
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    @property
    def mnemonic(self) -> str:
        """Conventional assembler text for this instruction."""
        return _format(self)

    def __str__(self) -> str:
        return f"{self.raw:04X}  {self.mnemonic}"


def _classify(opcode: int) -> Op:
    family = opcode >> 12
    op = _FAMILY_OPS.get(family)
    if op is not None:
        return op
    if family == 0x0:
        if opcode == 0x00E0:
            return Op.CLS
        if opcode == 0x00EE:
            return Op.RET
        return Op.SYS
    if family == 0x5:
        return Op.SE_VX_VY if opcode & 0xF == 0 else Op.UNKNOWN
    if family == 0x9:
        return Op.SNE_VX_VY if opcode & 0xF == 0 else Op.UNKNOWN
    if family == 0x8:
        return _ALU_OPS.get(opcode & 0xF, Op.UNKNOWN)
    if family == 0xE:
        return _KEY_OPS.get(opcode & 0xFF, Op.UNKNOWN)
    # 0xF
    return _MISC_OPS.get(opcode & 0xFF, Op.UNKNOWN)


@lru_cache(maxsize=None)
def decode(opcode: int) -> Instruction:
    """Decode a 16-bit *opcode* into an :class:`Instruction`.

    Instructions are immutable, so decoded words are cached.
    """
    opcode &= 0xFFFF
    return Instruction(
        op=_classify(opcode),
        raw=opcode,
        x=(opcode >> 8) & 0xF,
        y=(opcode >> 4) & 0xF,
        n=opcode & 0xF,
        nn=opcode & 0xFF,
        nnn=opcode & 0xFFF,
    )


# ---------------------------------------------------------------------------
# Disassembly
# ---------------------------------------------------------------------------

def _format(ins: Instruction) -> str:
    op = ins.op
    x, y = ins.x, ins.y
    if op == Op.CLS:
        return "CLS"
    if op == Op.RET:
        return "RET"
    if op == Op.SYS:
        return f"SYS 0x{ins.nnn:03X}"
    if op == Op.JP:
        return f"JP 0x{ins.nnn:03X}"
    if op == Op.CALL:
        return f"CALL 0x{ins.nnn:03X}"
    if op == Op.SE_VX_NN:
        return f"SE V{x:X}, 0x{ins.nn:02X}"
    if op == Op.SNE_VX_NN:
        return f"SNE V{x:X}, 0x{ins.nn:02X}"
    if op == Op.SE_VX_VY:
        return f"SE V{x:X}, V{y:X}"
    if op == Op.LD_VX_NN:
        return f"LD V{x:X}, 0x{ins.nn:02X}"
    if op == Op.ADD_VX_NN:
        return f"ADD V{x:X}, 0x{ins.nn:02X}"
    if op in _ALU_NAMES:
        return f"{_ALU_NAMES[op]} V{x:X}, V{y:X}"
    if op == Op.SNE_VX_VY:
        return f"SNE V{x:X}, V{y:X}"
    if op == Op.LD_I:
        return f"LD I, 0x{ins.nnn:03X}"
    if op == Op.JP_V0:
        return f"JP V0, 0x{ins.nnn:03X}"
    if op == Op.RND:
        return f"RND V{x:X}, 0x{ins.nn:02X}"
    if op == Op.DRW:
        return f"DRW V{x:X}, V{y:X}, {ins.n}"
    if op == Op.SKP:
        return f"SKP V{x:X}"
    if op == Op.SKNP:
        return f"SKNP V{x:X}"
    if op in _MISC_FORMATS:
        return _MISC_FORMATS[op].format(x=x)
    return f"DW 0x{ins.raw:04X}"


_ALU_NAMES: dict[Op, str] = {
    Op.LD_VX_VY: "LD",
    Op.OR: "OR",
    Op.AND: "AND",
    Op.XOR: "XOR",
    Op.ADD_VX_VY: "ADD",
    Op.SUB: "SUB",
    Op.SHR: "SHR",
    Op.SUBN: "SUBN",
    Op.SHL: "SHL",
}

_MISC_FORMATS: dict[Op, str] = {
    Op.LD_VX_DT: "LD V{x:X}, DT",
    Op.LD_VX_K: "LD V{x:X}, K",
    Op.LD_DT_VX: "LD DT, V{x:X}",
    Op.LD_ST_VX: "LD ST, V{x:X}",
    Op.ADD_I_VX: "ADD I, V{x:X}",
    Op.LD_F_VX: "LD F, V{x:X}",
    Op.LD_B_VX: "LD B, V{x:X}",
    Op.LD_MEM_VX: "LD [I], V{x:X}",
    Op.LD_VX_MEM: "LD V{x:X}, [I]",
}


def disassemble(opcode: int) -> str:
    """Return the mnemonic for a raw 16-bit *opcode*."""
    return decode(opcode).mnemonic


def disassemble_program(data: bytes, origin: int = 0x200) -> list[str]:
    """Disassemble a raw program image into ``"ADDR: WORD  MNEMONIC"`` lines.

    A trailing odd byte is shown as a data byte.
    """
    lines: list[str] = []
    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        lines.append(f"{origin + offset:03X}: {decode(word)}")
    if len(data) % 2:
        lines.append(f"{origin + len(data) - 1:03X}: {data[-1]:02X}    DB 0x{data[-1]:02X}")
    return lines
