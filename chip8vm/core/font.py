"""
Built-in hexadecimal font for the CHIP-8.

Sixteen glyphs (0-F), each 4 pixels wide and 5 rows tall.  Only the high
nibble of every row byte is drawn.  The atlas is copied into the bottom of
every machine's memory on reset; FX29 points I at glyph ``d`` with
``FONT_ADDRESS + d * GLYPH_HEIGHT``.
"""

FONT_ADDRESS: int = 0x000
GLYPH_HEIGHT: int = 5

# fmt: off
FONT_SET: bytes = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])
# fmt: on

FONT_END: int = FONT_ADDRESS + len(FONT_SET)


def glyph_address(digit: int) -> int:
    """Return the memory address of the glyph for hex *digit* (low nibble)."""
    return FONT_ADDRESS + (digit & 0xF) * GLYPH_HEIGHT
