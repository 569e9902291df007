"""
CHIP-8 CPU for the chip8vm emulator.

Implements the canonical 35-instruction CHIP-8 set with the widely used
modern conventions:

* 8XY6 / 8XYE shift VX by one bit and ignore VY.
* BNNN jumps to NNN + V0 (a single PC assignment).
* FX55 / FX65 leave I unchanged.
* For 8XY4..8XYE the flag is written *after* the result, so when X is F the
  register ends up holding the flag.
* 0NNN (call a native machine-code routine) cannot be executed and is
  reported like any other unknown opcode.

The program counter is advanced past the instruction *before* the handler
runs, exactly like the fetch cycle of real hardware.  Jumps and calls simply
overwrite it, skips add another 2, and FX0A steps it back while no key is
pressed so the same instruction is fetched again on the next cycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, List

from chip8vm.core.decoder import Instruction, decode
from chip8vm.core.errors import MachineError, StackOverflow, StackUnderflow, UnknownOpcode
from chip8vm.core.font import glyph_address
from chip8vm.core.logger import LEVEL_TRACE, LEVEL_WARNING
from chip8vm.core.memory import Memory
from chip8vm.core.types import Op

if TYPE_CHECKING:
    from chip8vm.core.machine import Machine


class CPU:
    """CHIP-8 register file, call stack, timers and instruction set.

    Parameters
    ----------
    machine:
        Back-reference to the owning machine.  Memory is accessed via
        ``machine.mem``, the display via ``machine.frame_buffer``, keys via
        ``machine.keypad`` and random numbers via ``machine.rng``.
    """

    REGISTER_COUNT: int = 16
    STACK_DEPTH: int = 16
    FLAG: int = 0xF

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(self, machine: Machine) -> None:
        self.m = machine

        # Registers
        self.v: List[int] = [0] * self.REGISTER_COUNT   # V0..VF, 8-bit
        self.i: int = 0                                 # 16-bit index
        self.pc: int = Memory.PROGRAM_START             # 16-bit program counter

        # Call stack
        self.stack: List[int] = [0] * self.STACK_DEPTH
        self.sp: int = 0

        # Timers (60 Hz, driven from outside)
        self.delay_timer: int = 0
        self.sound_timer: int = 0

        # Bookkeeping
        self.cycle_count: int = 0
        self.waiting_for_key: bool = False

        self._opcode_table: Dict[Op, Callable[[Instruction], None]] = (
            self._build_opcode_table()
        )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return every register to its power-on state."""
        for r in range(self.REGISTER_COUNT):
            self.v[r] = 0
        for s in range(self.STACK_DEPTH):
            self.stack[s] = 0
        self.i = 0
        self.sp = 0
        self.pc = Memory.PROGRAM_START
        self.delay_timer = 0
        self.sound_timer = 0
        self.cycle_count = 0
        self.waiting_for_key = False

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------

    def step(self) -> Instruction:
        """Fetch, decode and execute one instruction.

        Returns the decoded instruction.  On a fatal error the program
        counter is left pointing at the offending instruction; on
        :class:`UnknownOpcode` it has already moved past it.
        """
        address = self.pc
        opcode = self.m.mem.fetch_word(address)
        ins = decode(opcode)

        logger = self.m.logger
        if logger.level >= LEVEL_TRACE:
            logger.log(LEVEL_TRACE, f"${address:03X}  {ins}")

        self.pc = address + 2
        try:
            self._opcode_table[ins.op](ins)
        except MachineError as exc:
            if exc.fatal:
                self.pc = address
            raise
        # An FX0A poll with no key held is not a completed instruction.
        if not self.waiting_for_key:
            self.cycle_count += 1
        return ins

    def tick_timers(self) -> None:
        """Count both timers down by one, stopping at zero."""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    # ------------------------------------------------------------------
    # Stack operations
    # ------------------------------------------------------------------

    def push(self, address: int) -> None:
        """Push a return address onto the call stack."""
        if self.sp >= self.STACK_DEPTH:
            raise StackOverflow(self.pc - 2)
        self.stack[self.sp] = address & 0xFFFF
        self.sp += 1

    def pull(self) -> int:
        """Pop a return address from the call stack."""
        if self.sp <= 0:
            raise StackUnderflow(self.pc - 2)
        self.sp -= 1
        return self.stack[self.sp]

    def skip(self, cond: bool) -> None:
        """Skip the next instruction when *cond* holds."""
        if cond:
            self.pc += 2

    # ------------------------------------------------------------------
    # Instruction implementations
    # ------------------------------------------------------------------

    def i_unknown(self, ins: Instruction) -> None:
        self.m.logger.log(
            LEVEL_WARNING,
            f"Unknown opcode {ins.raw:04X} at ${self.pc - 2:03X}",
        )
        raise UnknownOpcode(ins.raw, self.pc - 2)

    def i_cls(self, ins: Instruction) -> None:
        self.m.frame_buffer.clear()

    def i_ret(self, ins: Instruction) -> None:
        self.pc = self.pull()

    def i_jp(self, ins: Instruction) -> None:
        self.pc = ins.nnn

    def i_call(self, ins: Instruction) -> None:
        self.push(self.pc)
        self.pc = ins.nnn

    def i_se_vx_nn(self, ins: Instruction) -> None:
        self.skip(self.v[ins.x] == ins.nn)

    def i_sne_vx_nn(self, ins: Instruction) -> None:
        self.skip(self.v[ins.x] != ins.nn)

    def i_se_vx_vy(self, ins: Instruction) -> None:
        self.skip(self.v[ins.x] == self.v[ins.y])

    def i_sne_vx_vy(self, ins: Instruction) -> None:
        self.skip(self.v[ins.x] != self.v[ins.y])

    def i_ld_vx_nn(self, ins: Instruction) -> None:
        self.v[ins.x] = ins.nn

    def i_add_vx_nn(self, ins: Instruction) -> None:
        # No carry flag for the immediate form.
        self.v[ins.x] = (self.v[ins.x] + ins.nn) & 0xFF

    def i_ld_vx_vy(self, ins: Instruction) -> None:
        self.v[ins.x] = self.v[ins.y]

    def i_or(self, ins: Instruction) -> None:
        self.v[ins.x] |= self.v[ins.y]

    def i_and(self, ins: Instruction) -> None:
        self.v[ins.x] &= self.v[ins.y]

    def i_xor(self, ins: Instruction) -> None:
        self.v[ins.x] ^= self.v[ins.y]

    def i_add_vx_vy(self, ins: Instruction) -> None:
        total = self.v[ins.x] + self.v[ins.y]
        self.v[ins.x] = total & 0xFF
        self.v[self.FLAG] = 1 if total > 0xFF else 0

    def i_sub(self, ins: Instruction) -> None:
        vx, vy = self.v[ins.x], self.v[ins.y]
        self.v[ins.x] = (vx - vy) & 0xFF
        self.v[self.FLAG] = 0 if vx < vy else 1

    def i_shr(self, ins: Instruction) -> None:
        vx = self.v[ins.x]
        self.v[ins.x] = vx >> 1
        self.v[self.FLAG] = vx & 0x01

    def i_subn(self, ins: Instruction) -> None:
        vx, vy = self.v[ins.x], self.v[ins.y]
        self.v[ins.x] = (vy - vx) & 0xFF
        self.v[self.FLAG] = 0 if vy < vx else 1

    def i_shl(self, ins: Instruction) -> None:
        vx = self.v[ins.x]
        self.v[ins.x] = (vx << 1) & 0xFF
        self.v[self.FLAG] = (vx >> 7) & 0x01

    def i_ld_i(self, ins: Instruction) -> None:
        self.i = ins.nnn

    def i_jp_v0(self, ins: Instruction) -> None:
        self.pc = (ins.nnn + self.v[0]) & Memory.ADDRESS_MASK

    def i_rnd(self, ins: Instruction) -> None:
        self.v[ins.x] = self.m.rng.randint(0, 0xFF) & ins.nn

    def i_drw(self, ins: Instruction) -> None:
        rows = self.m.mem.read_block(self.i, ins.n)
        collision = self.m.frame_buffer.draw_sprite(
            self.v[ins.x], self.v[ins.y], rows
        )
        self.v[self.FLAG] = 1 if collision else 0

    def i_skp(self, ins: Instruction) -> None:
        self.skip(self.m.keypad.is_pressed(self.v[ins.x]))

    def i_sknp(self, ins: Instruction) -> None:
        self.skip(not self.m.keypad.is_pressed(self.v[ins.x]))

    def i_ld_vx_dt(self, ins: Instruction) -> None:
        self.v[ins.x] = self.delay_timer

    def i_ld_vx_k(self, ins: Instruction) -> None:
        key = self.m.keypad.first_pressed()
        if key is None:
            # Re-execute this instruction on the next cycle.
            self.pc -= 2
            self.waiting_for_key = True
            return
        self.waiting_for_key = False
        self.v[ins.x] = int(key)

    def i_ld_dt_vx(self, ins: Instruction) -> None:
        self.delay_timer = self.v[ins.x]

    def i_ld_st_vx(self, ins: Instruction) -> None:
        self.sound_timer = self.v[ins.x]

    def i_add_i_vx(self, ins: Instruction) -> None:
        total = self.i + self.v[ins.x]
        self.i = total & Memory.ADDRESS_MASK
        self.v[self.FLAG] = 1 if total > Memory.ADDRESS_MASK else 0

    def i_ld_f_vx(self, ins: Instruction) -> None:
        self.i = glyph_address(self.v[ins.x])

    def i_ld_b_vx(self, ins: Instruction) -> None:
        value = self.v[ins.x]
        mem = self.m.mem
        mem[self.i] = value // 100
        mem[self.i + 1] = (value // 10) % 10
        mem[self.i + 2] = value % 10

    def i_ld_mem_vx(self, ins: Instruction) -> None:
        mem = self.m.mem
        for r in range(ins.x + 1):
            mem[self.i + r] = self.v[r]

    def i_ld_vx_mem(self, ins: Instruction) -> None:
        mem = self.m.mem
        for r in range(ins.x + 1):
            self.v[r] = mem[self.i + r]

    # ------------------------------------------------------------------
    # Snapshot helpers
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        """Return a serialisable snapshot of CPU state."""
        return {
            "v": list(self.v), "i": self.i, "pc": self.pc,
            "stack": list(self.stack), "sp": self.sp,
            "delay_timer": self.delay_timer, "sound_timer": self.sound_timer,
            "cycle_count": self.cycle_count,
            "waiting_for_key": self.waiting_for_key,
        }

    def check_snapshot(self, snapshot: dict) -> None:
        """Raise ``ValueError`` if *snapshot* cannot be restored."""
        if (
            len(snapshot["v"]) != self.REGISTER_COUNT
            or len(snapshot["stack"]) != self.STACK_DEPTH
        ):
            raise ValueError("Snapshot register/stack size mismatch")
        sp = int(snapshot["sp"])
        if not 0 <= sp <= self.STACK_DEPTH:
            raise ValueError(f"Snapshot stack pointer out of range: {sp}")

    def restore_snapshot(self, snapshot: dict) -> None:
        """Restore CPU state from a previous snapshot.

        Raises:
            ValueError: If the register or stack arrays have the wrong size,
                or the stack pointer is out of range.
        """
        self.check_snapshot(snapshot)
        self.v[:] = [r & 0xFF for r in snapshot["v"]]
        self.stack[:] = [a & 0xFFFF for a in snapshot["stack"]]
        self.sp = int(snapshot["sp"])
        self.i = snapshot["i"] & 0xFFFF
        self.pc = snapshot["pc"] & 0xFFFF
        self.delay_timer = snapshot.get("delay_timer", 0) & 0xFF
        self.sound_timer = snapshot.get("sound_timer", 0) & 0xFF
        self.cycle_count = snapshot.get("cycle_count", 0)
        self.waiting_for_key = snapshot.get("waiting_for_key", False)

    # ------------------------------------------------------------------
    # Opcode table
    # ------------------------------------------------------------------

    def _build_opcode_table(self) -> Dict[Op, Callable[[Instruction], None]]:
        """Map every :class:`Op` variant to its handler.

        The program counter has already been advanced past the instruction
        when the handler is invoked.
        """
        t: Dict[Op, Callable[[Instruction], None]] = {
            Op.UNKNOWN: self.i_unknown,
            Op.SYS: self.i_unknown,
            Op.CLS: self.i_cls,
            Op.RET: self.i_ret,
            Op.JP: self.i_jp,
            Op.CALL: self.i_call,
            Op.SE_VX_NN: self.i_se_vx_nn,
            Op.SNE_VX_NN: self.i_sne_vx_nn,
            Op.SE_VX_VY: self.i_se_vx_vy,
            Op.LD_VX_NN: self.i_ld_vx_nn,
            Op.ADD_VX_NN: self.i_add_vx_nn,
            Op.LD_VX_VY: self.i_ld_vx_vy,
            Op.OR: self.i_or,
            Op.AND: self.i_and,
            Op.XOR: self.i_xor,
            Op.ADD_VX_VY: self.i_add_vx_vy,
            Op.SUB: self.i_sub,
            Op.SHR: self.i_shr,
            Op.SUBN: self.i_subn,
            Op.SHL: self.i_shl,
            Op.SNE_VX_VY: self.i_sne_vx_vy,
            Op.LD_I: self.i_ld_i,
            Op.JP_V0: self.i_jp_v0,
            Op.RND: self.i_rnd,
            Op.DRW: self.i_drw,
            Op.SKP: self.i_skp,
            Op.SKNP: self.i_sknp,
            Op.LD_VX_DT: self.i_ld_vx_dt,
            Op.LD_VX_K: self.i_ld_vx_k,
            Op.LD_DT_VX: self.i_ld_dt_vx,
            Op.LD_ST_VX: self.i_ld_st_vx,
            Op.ADD_I_VX: self.i_add_i_vx,
            Op.LD_F_VX: self.i_ld_f_vx,
            Op.LD_B_VX: self.i_ld_b_vx,
            Op.LD_MEM_VX: self.i_ld_mem_vx,
            Op.LD_VX_MEM: self.i_ld_vx_mem,
        }
        missing = set(Op) - set(t)
        assert not missing, f"Unhandled instruction variants: {missing}"
        return t

    def __repr__(self) -> str:
        return (
            f"CPU(pc=${self.pc:03X}, i=${self.i:03X}, sp={self.sp}, "
            f"dt={self.delay_timer}, st={self.sound_timer})"
        )
