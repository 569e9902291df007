"""
Memory -- the 4 KB address space of the CHIP-8.

Layout
------

=============  ==============================================
Range          Use
=============  ==============================================
0x000-0x04F    Built-in font atlas (16 glyphs x 5 bytes)
0x050-0x1FF    Reserved (interpreter area on original hardware)
0x200-0xFFF    Program image and program data
=============  ==============================================

Byte reads and writes are masked with 0xFFF so that no operand derived from
an opcode can ever reach outside the array.  Instruction fetches are the one
exception: they are bounds-checked and raise :class:`InvalidAddress` instead
of wrapping, because running off the end of memory means the program has
lost control.
"""

from __future__ import annotations

from chip8vm.core.errors import InvalidAddress


class Memory:
    """4096 bytes of RAM addressed with 12 bits."""

    SIZE: int = 0x1000
    ADDRESS_MASK: int = 0xFFF
    PROGRAM_START: int = 0x200

    def __init__(self) -> None:
        self._data: bytearray = bytearray(self.SIZE)

    def reset(self) -> None:
        """Clear the RAM contents to all zeros."""
        self._data[:] = bytes(self.SIZE)

    def __len__(self) -> int:
        return self.SIZE

    def __getitem__(self, addr: int) -> int:
        return self._data[addr & self.ADDRESS_MASK]

    def __setitem__(self, addr: int, value: int) -> None:
        self._data[addr & self.ADDRESS_MASK] = value & 0xFF

    def load(self, offset: int, data: bytes) -> None:
        """Copy *data* into memory starting at *offset*.

        Raises:
            ValueError: If the block would not fit inside memory.
        """
        end = offset + len(data)
        if offset < 0 or end > self.SIZE:
            raise ValueError(
                f"Block of {len(data)} bytes at ${offset:03X} does not fit in memory"
            )
        self._data[offset:end] = data

    def read_block(self, offset: int, length: int) -> bytes:
        """Return *length* bytes starting at *offset*, wrapping at 0xFFF."""
        return bytes(self[offset + i] for i in range(length))

    def fetch_word(self, addr: int) -> int:
        """Read the big-endian 16-bit word at *addr*.

        Raises:
            InvalidAddress: If *addr* or *addr + 1* lies outside memory.
        """
        if addr < 0 or addr + 1 >= self.SIZE:
            raise InvalidAddress(addr)
        return (self._data[addr] << 8) | self._data[addr + 1]

    # ------------------------------------------------------------------
    # Serialisation helpers (save-state support)
    # ------------------------------------------------------------------

    def get_snapshot(self) -> bytes:
        """Return an immutable copy of the RAM contents."""
        return bytes(self._data)

    def check_snapshot(self, data: bytes) -> None:
        """Raise ``ValueError`` unless *data* is exactly :attr:`SIZE` bytes."""
        if len(data) != self.SIZE:
            raise ValueError(
                f"Snapshot size mismatch: expected {self.SIZE}, got {len(data)}"
            )

    def restore_snapshot(self, data: bytes) -> None:
        """Restore RAM contents from a previous snapshot.

        Raises:
            ValueError: If *data* is not exactly :attr:`SIZE` bytes.
        """
        self.check_snapshot(data)
        self._data[:] = data

    def __repr__(self) -> str:
        return f"Memory(size={self.SIZE})"
