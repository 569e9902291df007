"""
ROM loading and inspection service for chip8vm.

CHIP-8 ROMs are raw images: big-endian 16-bit opcodes packed from file
offset 0, with no header.  The image is loaded at 0x200, so at most
3584 bytes fit.

Responsibilities:
  - Read ROM files from disk and reject images that cannot fit in memory.
  - Produce a short metadata summary for ``--info``.
  - Disassemble a ROM for ``--disasm``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from chip8vm.core.decoder import decode, disassemble_program
from chip8vm.core.errors import ProgramTooLarge
from chip8vm.core.machine import Machine
from chip8vm.core.types import Op


# Extensions commonly used for CHIP-8 images.
_EXT_CHIP8: frozenset[str] = frozenset({".ch8", ".c8", ".rom", ".bin"})


@dataclass(frozen=True)
class RomInfo:
    """Static facts about a ROM image."""

    title: str
    size: int
    word_count: int
    unknown_words: int
    first_instruction: str
    uses_sound: bool
    uses_keypad: bool


class RomBytesService:
    """Static utility for loading ROM files and inferring metadata."""

    # -- reading -----------------------------------------------------------

    @staticmethod
    def read(path: str) -> bytes:
        """Read a ROM image from *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ProgramTooLarge: If the image does not fit above 0x200.
            OSError: On general I/O failure.
        """
        with open(path, "rb") as fh:
            data = fh.read()
        RomBytesService.validate(data)
        return data

    @staticmethod
    def validate(data: bytes) -> None:
        """Raise :class:`ProgramTooLarge` if *data* cannot be loaded."""
        if len(data) > Machine.MAX_PROGRAM_SIZE:
            raise ProgramTooLarge(len(data), Machine.MAX_PROGRAM_SIZE)

    @staticmethod
    def has_known_extension(path: str) -> bool:
        """Return ``True`` if *path* ends in a usual CHIP-8 extension."""
        return os.path.splitext(path)[1].lower() in _EXT_CHIP8

    # -- inspection --------------------------------------------------------

    @staticmethod
    def inspect(data: bytes, title: str = "") -> RomInfo:
        """Scan every aligned word of *data* and summarise it.

        The scan is static: data bytes interleaved with code are decoded as
        if they were instructions, so the counts are estimates.
        """
        ops = [
            decode((data[i] << 8) | data[i + 1]).op
            for i in range(0, len(data) - 1, 2)
        ]
        first = decode((data[0] << 8) | data[1]).mnemonic if len(data) >= 2 else "-"
        return RomInfo(
            title=title,
            size=len(data),
            word_count=len(ops),
            unknown_words=sum(1 for op in ops if op in (Op.UNKNOWN, Op.SYS)),
            first_instruction=first,
            uses_sound=Op.LD_ST_VX in ops,
            uses_keypad=any(op in (Op.SKP, Op.SKNP, Op.LD_VX_K) for op in ops),
        )

    @staticmethod
    def describe(path: str) -> dict[str, str]:
        """Return a human-readable description of a ROM file.

        Returns a dict with keys: ``title``, ``rom_size``, ``words``,
        ``unknown_words``, ``first_instruction``, ``uses_sound``,
        ``uses_keypad``.
        """
        data = RomBytesService.read(path)
        title = os.path.splitext(os.path.basename(path))[0]
        info = RomBytesService.inspect(data, title)
        return {
            "title": info.title,
            "rom_size": str(info.size),
            "words": str(info.word_count),
            "unknown_words": str(info.unknown_words),
            "first_instruction": info.first_instruction,
            "uses_sound": "yes" if info.uses_sound else "no",
            "uses_keypad": "yes" if info.uses_keypad else "no",
        }

    @staticmethod
    def disassemble(path: str) -> list[str]:
        """Disassemble the ROM at *path*, one line per word."""
        return disassemble_program(RomBytesService.read(path), Machine.PROGRAM_START)
