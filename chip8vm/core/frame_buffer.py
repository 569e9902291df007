"""
FrameBuffer -- the 64x32 monochrome display of the CHIP-8.

The buffer stores **one byte per pixel** (0 = off, 1 = on) in row order::

    pixels[y * WIDTH + x]

Sprites are drawn by XOR.  A pixel that was on and is switched off by a
sprite counts as a *collision*; :meth:`draw_sprite` reports whether any
collision happened so the CPU can set VF.

Each sprite row wraps horizontally and each row position wraps vertically,
so a sprite drawn near the right or bottom edge reappears on the opposite
side.
"""

from __future__ import annotations

from typing import Iterable


class FrameBuffer:
    """Holds the current contents of the 64x32 display."""

    WIDTH: int = 64
    HEIGHT: int = 32
    SPRITE_WIDTH: int = 8

    def __init__(self) -> None:
        self._size: int = self.WIDTH * self.HEIGHT
        self.pixels: bytearray = bytearray(self._size)

    @property
    def size(self) -> int:
        """Total number of pixels."""
        return self._size

    def clear(self) -> None:
        """Switch every pixel off."""
        self.pixels[:] = bytes(self._size)

    def read_pixel(self, x: int, y: int) -> int:
        """Read the pixel at (*x*, *y*).

        Raises:
            IndexError: If the coordinates are off-screen.
        """
        if not (0 <= x < self.WIDTH and 0 <= y < self.HEIGHT):
            raise IndexError(f"pixel ({x}, {y}) out of range")
        return self.pixels[y * self.WIDTH + x]

    def draw_sprite(self, x: int, y: int, rows: Iterable[int]) -> bool:
        """XOR an 8-pixel-wide sprite onto the display.

        Args:
            x: Left edge; reduced modulo :attr:`WIDTH`.
            y: Top edge; reduced modulo :attr:`HEIGHT`.
            rows: One byte per sprite row, most significant bit leftmost.

        Returns:
            ``True`` if any pixel that was on has been switched off.
        """
        x %= self.WIDTH
        y %= self.HEIGHT
        pixels = self.pixels
        collision = False
        for row_no, row in enumerate(rows):
            offset = ((y + row_no) % self.HEIGHT) * self.WIDTH
            for bit in range(self.SPRITE_WIDTH):
                if not (row >> (7 - bit)) & 1:
                    continue
                idx = offset + (x + bit) % self.WIDTH
                if pixels[idx]:
                    collision = True
                pixels[idx] ^= 1
        return collision

    def lit_count(self) -> int:
        """Number of pixels currently on."""
        return sum(self.pixels)

    def to_text(self, on: str = "#", off: str = ".") -> str:
        """Render the display as text, one line per row (debug helper)."""
        w = self.WIDTH
        return "\n".join(
            "".join(on if p else off for p in self.pixels[r * w:(r + 1) * w])
            for r in range(self.HEIGHT)
        )

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def get_snapshot(self) -> bytes:
        return bytes(self.pixels)

    def check_snapshot(self, data: bytes) -> None:
        if len(data) != self._size:
            raise ValueError(
                f"Snapshot size mismatch: expected {self._size}, got {len(data)}"
            )

    def restore_snapshot(self, data: bytes) -> None:
        self.check_snapshot(data)
        self.pixels[:] = data

    def __repr__(self) -> str:
        return f"FrameBuffer(width={self.WIDTH}, height={self.HEIGHT})"
