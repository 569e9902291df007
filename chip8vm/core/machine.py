"""
Machine -- one complete CHIP-8 system.

A :class:`Machine` owns every piece of emulated state:

* **CPU** -- registers V0..VF, I, PC, the 16-entry call stack and the two
  timers (:class:`~chip8vm.core.cpu.CPU`).
* **Memory** -- 4 KB of RAM with the font atlas at the bottom.
* **FrameBuffer** -- the 64x32 monochrome display.
* **Keypad** -- the sixteen hex keys.

There is no global state: each machine gets its own random number
generator and logger, so several machines can run side by side.

The machine has no clock of its own.  A host drives it by calling
:meth:`step` at the chosen instruction rate and :meth:`tick_timers` at
60 Hz.  A fatal error (bad fetch address, stack over/underflow) sets
:attr:`machine_halt`; further :meth:`step` calls do nothing until
:meth:`reset`.
"""

from __future__ import annotations

import random
from typing import Optional

from chip8vm.core.cpu import CPU
from chip8vm.core.decoder import Instruction
from chip8vm.core.errors import MachineError, ProgramTooLarge
from chip8vm.core.font import FONT_ADDRESS, FONT_SET
from chip8vm.core.frame_buffer import FrameBuffer
from chip8vm.core.input_state import Keypad
from chip8vm.core.logger import LEVEL_ERROR, LEVEL_INFO, ILogger, NullLogger
from chip8vm.core.memory import Memory


class Machine:
    """A CHIP-8 virtual machine.

    Parameters
    ----------
    rng:
        Source of random bytes for CXNN.  Any object with a
        ``randint(a, b)`` method compatible with :class:`random.Random`.
        When ``None`` a fresh, unseeded :class:`random.Random` is created.
    logger:
        Receives core diagnostics.  When ``None`` the machine gets its own
        no-op :class:`~chip8vm.core.logger.NullLogger`.
    """

    PROGRAM_START: int = Memory.PROGRAM_START
    MAX_PROGRAM_SIZE: int = Memory.SIZE - Memory.PROGRAM_START

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        logger: Optional[ILogger] = None,
    ) -> None:
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.logger: ILogger = logger if logger is not None else NullLogger()

        self.mem: Memory = Memory()
        self.frame_buffer: FrameBuffer = FrameBuffer()
        self.keypad: Keypad = Keypad()
        self.cpu: CPU = CPU(self)

        self.machine_halt: bool = False
        self.program_size: int = 0

        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return the machine to its power-on state.

        Clears registers, stack, timers, display, keys and memory, then
        writes the font atlas and points PC at 0x200.
        """
        self.mem.reset()
        self.mem.load(FONT_ADDRESS, FONT_SET)
        self.cpu.reset()
        self.frame_buffer.clear()
        self.keypad.clear_all_input()
        self.machine_halt = False
        self.program_size = 0

    def load_program(self, data: bytes) -> None:
        """Copy a raw program image into memory at 0x200.

        Registers and PC are left alone; call :meth:`reset` first.

        Raises:
            ProgramTooLarge: If *data* does not fit between 0x200 and 0xFFF.
        """
        if len(data) > self.MAX_PROGRAM_SIZE:
            raise ProgramTooLarge(len(data), self.MAX_PROGRAM_SIZE)
        self.mem.load(self.PROGRAM_START, bytes(data))
        self.program_size = len(data)
        self.logger.log(LEVEL_INFO, f"Loaded {len(data)} byte program at $200")

    def step(self) -> Optional[Instruction]:
        """Run one fetch-decode-execute cycle.

        Returns the executed instruction, or ``None`` if the machine is
        halted.

        Raises:
            InvalidAddress: The fetch ran off the end of memory.
            StackOverflow: A call was made with a full stack.
            StackUnderflow: A return was made with an empty stack.
            UnknownOpcode: The word at PC is not a canonical instruction;
                PC has already advanced and stepping may continue.
        """
        if self.machine_halt:
            return None
        try:
            return self.cpu.step()
        except MachineError as exc:
            if exc.fatal:
                self.machine_halt = True
                self.logger.log(LEVEL_ERROR, f"Machine halted: {exc}")
            raise

    def tick_timers(self) -> None:
        """Advance the delay and sound timers by one 60 Hz tick."""
        self.cpu.tick_timers()

    # ------------------------------------------------------------------
    # Read accessors for host collaborators
    # ------------------------------------------------------------------

    @property
    def pc(self) -> int:
        return self.cpu.pc

    @property
    def delay_timer(self) -> int:
        return self.cpu.delay_timer

    @property
    def sound_timer(self) -> int:
        return self.cpu.sound_timer

    @property
    def sound_active(self) -> bool:
        """``True`` while the buzzer should sound."""
        return self.cpu.sound_timer > 0

    @property
    def waiting_for_key(self) -> bool:
        """``True`` while an FX0A instruction is waiting for a key."""
        return self.cpu.waiting_for_key

    @property
    def cycle_count(self) -> int:
        """Instructions completed since reset.

        Unknown opcodes, fatal faults and FX0A polls that found no key
        are not counted.
        """
        return self.cpu.cycle_count

    # ------------------------------------------------------------------
    # Serialisation helpers (save-state support)
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        """Return a serialisable snapshot of the whole machine."""
        return {
            "machine_halt": self.machine_halt,
            "program_size": self.program_size,
            "cpu": self.cpu.get_snapshot(),
            "memory": self.mem.get_snapshot(),
            "frame_buffer": self.frame_buffer.get_snapshot(),
            "keypad": self.keypad.get_snapshot(),
        }

    def restore_snapshot(self, snapshot: dict) -> None:
        """Restore machine state from :meth:`get_snapshot` output.

        Every component is checked before anything is written, so a
        rejected snapshot leaves the machine untouched.

        Raises:
            ValueError: If any component snapshot has the wrong size.
        """
        self.cpu.check_snapshot(snapshot["cpu"])
        self.mem.check_snapshot(snapshot["memory"])
        self.frame_buffer.check_snapshot(snapshot["frame_buffer"])
        self.keypad.check_snapshot(snapshot["keypad"])

        self.cpu.restore_snapshot(snapshot["cpu"])
        self.mem.restore_snapshot(snapshot["memory"])
        self.frame_buffer.restore_snapshot(snapshot["frame_buffer"])
        self.keypad.restore_snapshot(snapshot["keypad"])
        self.machine_halt = snapshot.get("machine_halt", False)
        self.program_size = snapshot.get("program_size", 0)

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"pc=${self.cpu.pc:03X}, "
            f"program_size={self.program_size}, "
            f"cycles={self.cpu.cycle_count}, "
            f"halted={self.machine_halt})"
        )
