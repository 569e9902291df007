"""
Exceptions raised by the CHIP-8 core.

All errors are raised synchronously from :meth:`Machine.step` or
:meth:`Machine.load_program`; the caller decides whether to halt, log, or
carry on.

=================  ===========  ============================================
Exception          Recoverable  Raised when
=================  ===========  ============================================
ProgramTooLarge    --           the image does not fit above 0x200
InvalidAddress     no           an instruction fetch runs past 0xFFF
StackOverflow      no           a 17th nested call is attempted
StackUnderflow     no           a return is executed with an empty stack
UnknownOpcode      yes          the fetched word is not a canonical opcode
=================  ===========  ============================================
"""

from __future__ import annotations


class MachineError(Exception):
    """Base class for every error raised by the CHIP-8 core."""

    #: Fatal errors halt the machine until the next reset.
    fatal: bool = True


class ProgramTooLarge(MachineError):
    """The program image exceeds the space available above 0x200."""

    def __init__(self, size: int, capacity: int) -> None:
        super().__init__(
            f"Program is {size} bytes; at most {capacity} bytes fit in memory"
        )
        self.size = size
        self.capacity = capacity


class InvalidAddress(MachineError):
    """An instruction fetch would read outside of memory."""

    def __init__(self, address: int) -> None:
        super().__init__(f"Instruction fetch out of bounds at ${address:04X}")
        self.address = address


class StackOverflow(MachineError):
    """A call was made with all 16 stack slots already in use."""

    def __init__(self, address: int) -> None:
        super().__init__(f"Call stack overflow at ${address:03X}")
        self.address = address


class StackUnderflow(MachineError):
    """A return was executed with no matching call."""

    def __init__(self, address: int) -> None:
        super().__init__(f"Return with empty call stack at ${address:03X}")
        self.address = address


class UnknownOpcode(MachineError):
    """The fetched word does not decode to a canonical instruction.

    The program counter has already moved past the offending word, so the
    caller may simply keep stepping.
    """

    fatal = False

    def __init__(self, opcode: int, address: int) -> None:
        super().__init__(f"Unknown opcode {opcode:04X} at ${address:03X}")
        self.opcode = opcode
        self.address = address
