"""Shared helpers for building and running tiny test programs."""

from __future__ import annotations

from chip8vm.core.machine import Machine


def assemble(*words: int) -> bytes:
    """Pack 16-bit opcodes into a big-endian program image."""
    return b"".join(w.to_bytes(2, "big") for w in words)


def run(machine: Machine, *words: int) -> Machine:
    """Load *words* at 0x200 and execute exactly that many instructions."""
    machine.load_program(assemble(*words))
    for _ in words:
        machine.step()
    return machine
