"""
CHIP-8 emulation core: the machine, its CPU, memory, display and keypad.

Nothing in this package touches the host (display, audio, input or clock).
"""

from chip8vm.core.errors import (
    InvalidAddress,
    MachineError,
    ProgramTooLarge,
    StackOverflow,
    StackUnderflow,
    UnknownOpcode,
)
from chip8vm.core.machine import Machine

__all__ = [
    "InvalidAddress",
    "Machine",
    "MachineError",
    "ProgramTooLarge",
    "StackOverflow",
    "StackUnderflow",
    "UnknownOpcode",
]
