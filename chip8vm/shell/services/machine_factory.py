"""
Machine creation factory for chip8vm.

Creates a ready-to-run :class:`~chip8vm.core.machine.Machine` from a ROM
file path: the machine is reset and the image is loaded at 0x200.

Typical usage::

    machine = MachineFactory.create("pong.ch8")
    machine = MachineFactory.create("pong.ch8", seed=1234)
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from chip8vm.core.logger import LEVEL_INFO, LEVEL_TRACE, LEVEL_WARNING, PythonLogger
from chip8vm.core.machine import Machine
from chip8vm.shell.services.rom_bytes_service import RomBytesService

logger = logging.getLogger(__name__)


class MachineFactory:
    """Create a CHIP-8 machine from a ROM file."""

    @staticmethod
    def create(
        rom_path: str,
        seed: Optional[int] = None,
        trace: bool = False,
    ) -> Machine:
        """Build and return a machine with the ROM loaded.

        Parameters
        ----------
        rom_path:
            Filesystem path to the raw ROM image.
        seed:
            Seed for the CXNN random source.  ``None`` seeds from the OS,
            an integer makes runs reproducible.
        trace:
            When ``True`` every executed instruction is logged at DEBUG
            level through :mod:`logging`.

        Raises
        ------
        FileNotFoundError
            If *rom_path* does not exist.
        ProgramTooLarge
            If the ROM does not fit in memory.
        """
        logger.info("Loading ROM: %s", rom_path)
        rom_bytes = RomBytesService.read(rom_path)
        logger.info("ROM size: %d bytes", len(rom_bytes))
        if not RomBytesService.has_known_extension(rom_path):
            logger.warning("Unusual extension for a CHIP-8 ROM: %s", rom_path)

        return MachineFactory.create_from_bytes(rom_bytes, seed=seed, trace=trace)

    @staticmethod
    def create_from_bytes(
        rom_bytes: bytes,
        seed: Optional[int] = None,
        trace: bool = False,
    ) -> Machine:
        """Build a machine from an in-memory ROM image."""
        core_logger = PythonLogger(
            "chip8vm.core",
            level=LEVEL_TRACE if trace else LEVEL_INFO,
        )
        if seed is not None:
            logger.info("Random seed: %d", seed)

        machine = Machine(rng=random.Random(seed), logger=core_logger)
        machine.reset()
        machine.load_program(rom_bytes)
        logger.info("Machine created: %r", machine)

        if len(rom_bytes) % 2:
            core_logger.log(LEVEL_WARNING, "ROM has an odd number of bytes")
        return machine
