"""Tests for memory, framebuffer, keypad and logger components."""

from __future__ import annotations

import logging

import pytest

from chip8vm.core.errors import InvalidAddress
from chip8vm.core.font import FONT_END, GLYPH_HEIGHT, glyph_address
from chip8vm.core.frame_buffer import FrameBuffer
from chip8vm.core.input_state import Keypad
from chip8vm.core.logger import (
    LEVEL_INFO,
    LEVEL_TRACE,
    LEVEL_WARNING,
    ConsoleLogger,
    NullLogger,
    PythonLogger,
)
from chip8vm.core.memory import Memory
from chip8vm.core.types import Key


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

def test_memory_masks_addresses_to_12_bits() -> None:
    mem = Memory()

    mem[0x1005] = 0x1AB

    assert mem[0x005] == 0xAB
    assert mem[0xF005] == 0xAB


def test_memory_fetch_word_is_big_endian() -> None:
    mem = Memory()
    mem.load(0x200, b"\xA2\x1E")

    assert mem.fetch_word(0x200) == 0xA21E


def test_memory_fetch_word_bounds() -> None:
    mem = Memory()

    assert mem.fetch_word(0xFFE) == 0
    with pytest.raises(InvalidAddress):
        mem.fetch_word(0xFFF)
    with pytest.raises(InvalidAddress):
        mem.fetch_word(-1)


def test_memory_load_rejects_overflowing_block() -> None:
    mem = Memory()

    with pytest.raises(ValueError):
        mem.load(0xFFF, b"\x00\x00")


def test_memory_read_block_wraps() -> None:
    mem = Memory()
    mem[0xFFF] = 1
    mem[0x000] = 2

    assert mem.read_block(0xFFF, 2) == b"\x01\x02"


def test_font_layout() -> None:
    assert FONT_END == 0x50
    assert glyph_address(0xF) == 0xF * GLYPH_HEIGHT
    assert glyph_address(0x1A) == 0xA * GLYPH_HEIGHT


# ---------------------------------------------------------------------------
# FrameBuffer
# ---------------------------------------------------------------------------

def test_frame_buffer_draw_and_collision() -> None:
    fb = FrameBuffer()

    assert fb.draw_sprite(0, 0, [0b10100000]) is False
    assert fb.read_pixel(0, 0) == 1
    assert fb.read_pixel(1, 0) == 0
    assert fb.read_pixel(2, 0) == 1

    # Overlapping only at x=2 switches that pixel off.
    assert fb.draw_sprite(2, 0, [0b10000000]) is True
    assert fb.read_pixel(2, 0) == 0
    assert fb.lit_count() == 1


def test_frame_buffer_lighting_a_dark_pixel_is_not_a_collision() -> None:
    fb = FrameBuffer()
    fb.draw_sprite(0, 0, [0b10000000])

    assert fb.draw_sprite(1, 0, [0b10000000]) is False
    assert fb.lit_count() == 2


def test_frame_buffer_read_pixel_range() -> None:
    fb = FrameBuffer()

    with pytest.raises(IndexError):
        fb.read_pixel(64, 0)
    with pytest.raises(IndexError):
        fb.read_pixel(0, 32)


def test_frame_buffer_to_text() -> None:
    fb = FrameBuffer()
    fb.draw_sprite(0, 0, [0b11000000])
    lines = fb.to_text().splitlines()

    assert len(lines) == 32
    assert lines[0].startswith("##.")
    assert set(lines[1]) == {"."}


def test_frame_buffer_clear() -> None:
    fb = FrameBuffer()
    fb.draw_sprite(10, 10, [0xFF] * 4)

    fb.clear()

    assert fb.lit_count() == 0


# ---------------------------------------------------------------------------
# Keypad
# ---------------------------------------------------------------------------

def test_keypad_press_release() -> None:
    keypad = Keypad()

    keypad.raise_input(Key.KA, True)
    keypad.raise_input(Key.K3, True)

    assert keypad.is_pressed(0xA)
    assert keypad.first_pressed() == Key.K3
    assert keypad.pressed_keys() == [Key.K3, Key.KA]

    keypad.raise_input(Key.K3, False)
    assert keypad.first_pressed() == Key.KA


def test_keypad_ignores_out_of_range_keys() -> None:
    keypad = Keypad()

    keypad.raise_input(16, True)
    keypad.raise_input(-1, True)

    assert keypad.first_pressed() is None


def test_keypad_is_pressed_uses_low_nibble() -> None:
    keypad = Keypad()
    keypad.raise_input(0x2, True)

    assert keypad.is_pressed(0x12)


def test_keypad_clear_all() -> None:
    keypad = Keypad()
    keypad.raise_input(1, True)

    keypad.clear_all_input()

    assert keypad.pressed_keys() == []


# ---------------------------------------------------------------------------
# Loggers
# ---------------------------------------------------------------------------

def test_null_loggers_are_independent() -> None:
    a, b = NullLogger(), NullLogger()

    a.level = LEVEL_TRACE

    assert a is not b
    assert b.level == -1


def test_console_logger_filters_by_level(capsys: pytest.CaptureFixture[str]) -> None:
    log = ConsoleLogger(level=LEVEL_WARNING)

    log.log(LEVEL_WARNING, "shown")
    log.log(LEVEL_TRACE, "hidden")

    out = capsys.readouterr().out
    assert "shown" in out
    assert "hidden" not in out


def test_python_logger_forwards_to_logging(caplog: pytest.LogCaptureFixture) -> None:
    log = PythonLogger("chip8vm.test", level=LEVEL_INFO)

    with caplog.at_level(logging.DEBUG, logger="chip8vm.test"):
        log.log(LEVEL_WARNING, "bad opcode")
        log.log(LEVEL_TRACE, "too detailed")

    assert [r.levelno for r in caplog.records] == [logging.WARNING]
    assert caplog.records[0].getMessage() == "bad opcode"
