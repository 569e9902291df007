"""Instruction-level tests for the CHIP-8 machine."""

from __future__ import annotations

import random

import pytest

from chip8vm.core.errors import (
    InvalidAddress,
    MachineError,
    ProgramTooLarge,
    StackOverflow,
    StackUnderflow,
    UnknownOpcode,
)
from chip8vm.core.font import FONT_SET
from chip8vm.core.machine import Machine
from chip8vm.core.types import Key
from tests.helpers import assemble, run


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def test_reset_writes_font_and_points_pc_at_program(machine: Machine) -> None:
    machine.mem[0x300] = 0xAA
    machine.cpu.v[3] = 9
    machine.cpu.i = 0x123
    machine.frame_buffer.pixels[10] = 1
    machine.keypad.raise_input(4, True)

    machine.reset()

    assert machine.mem.read_block(0, len(FONT_SET)) == FONT_SET
    assert machine.mem[0x300] == 0
    assert machine.cpu.v == [0] * 16
    assert machine.cpu.i == 0
    assert machine.cpu.sp == 0
    assert machine.pc == 0x200
    assert machine.frame_buffer.lit_count() == 0
    assert machine.keypad.first_pressed() is None


def test_reset_is_idempotent(machine: Machine) -> None:
    machine.reset()
    first = machine.get_snapshot()
    machine.reset()

    assert machine.get_snapshot() == first


def test_load_program_copies_bytes_at_0x200(machine: Machine) -> None:
    machine.load_program(b"\x12\x34\x56")

    assert machine.mem[0x200] == 0x12
    assert machine.mem[0x201] == 0x34
    assert machine.mem[0x202] == 0x56
    assert machine.program_size == 3


def test_load_program_rejects_oversized_image(machine: Machine) -> None:
    machine.load_program(bytes(4096 - 0x200))

    with pytest.raises(ProgramTooLarge):
        machine.load_program(bytes(4096 - 0x200 + 1))


def test_load_program_does_not_touch_pc(machine: Machine) -> None:
    machine.cpu.pc = 0x300
    machine.load_program(assemble(0x00E0))

    assert machine.pc == 0x300


def test_machines_do_not_share_state() -> None:
    a = Machine(rng=random.Random(1))
    b = Machine(rng=random.Random(1))

    a.mem[0] = 0x00
    run(a, 0x6A07)

    assert b.mem[0] == FONT_SET[0]
    assert b.cpu.v[0xA] == 0


# ---------------------------------------------------------------------------
# Flow control
# ---------------------------------------------------------------------------

def test_jump(machine: Machine) -> None:
    run(machine, 0x1300)

    assert machine.pc == 0x300


def test_jump_with_offset_sets_pc_once(machine: Machine) -> None:
    run(machine, 0x6005, 0xB300)

    assert machine.pc == 0x305


def test_jump_with_offset_masks_to_12_bits(machine: Machine) -> None:
    run(machine, 0x60FF, 0xBFFF)

    assert machine.pc == (0xFFF + 0xFF) & 0xFFF


def test_call_and_return(machine: Machine) -> None:
    machine.load_program(assemble(0x2206, 0x0000, 0x0000, 0x00EE))

    machine.step()
    assert machine.pc == 0x206
    assert machine.cpu.sp == 1

    machine.step()
    assert machine.pc == 0x202
    assert machine.cpu.sp == 0


def test_seventeen_nested_calls_overflow(machine: Machine) -> None:
    machine.load_program(assemble(0x2200))
    for _ in range(16):
        machine.step()
    assert machine.cpu.sp == 16

    with pytest.raises(StackOverflow):
        machine.step()

    assert machine.cpu.sp == 16
    assert machine.pc == 0x200
    assert machine.machine_halt
    assert machine.step() is None


def test_return_without_call_underflows(machine: Machine) -> None:
    machine.load_program(assemble(0x00EE))

    with pytest.raises(StackUnderflow):
        machine.step()

    assert machine.cpu.sp == 0
    assert machine.machine_halt


def test_reset_clears_halt(machine: Machine) -> None:
    machine.load_program(assemble(0x00EE))
    with pytest.raises(StackUnderflow):
        machine.step()

    machine.reset()

    assert not machine.machine_halt


@pytest.mark.parametrize(
    "words, expected_pc",
    [
        ((0x6A05, 0x3A05), 0x206),
        ((0x6A05, 0x3A06), 0x204),
        ((0x6A05, 0x4A06), 0x206),
        ((0x6A05, 0x4A05), 0x204),
        ((0x6A05, 0x6B05, 0x5AB0), 0x208),
        ((0x6A05, 0x6B06, 0x5AB0), 0x206),
        ((0x6A05, 0x6B06, 0x9AB0), 0x208),
        ((0x6A05, 0x6B05, 0x9AB0), 0x206),
    ],
)
def test_skips(machine: Machine, words: tuple[int, ...], expected_pc: int) -> None:
    run(machine, *words)

    assert machine.pc == expected_pc


# ---------------------------------------------------------------------------
# Arithmetic and logic
# ---------------------------------------------------------------------------

def test_load_and_add_immediate_wraps_without_flag(machine: Machine) -> None:
    run(machine, 0x6AFF, 0x6F05, 0x7A02)

    assert machine.cpu.v[0xA] == 0x01
    assert machine.cpu.v[0xF] == 0x05


def test_register_copy_and_bitwise(machine: Machine) -> None:
    run(machine, 0x6A0C, 0x6B0A, 0x6C0C, 0x6D0C, 0x8AB1, 0x8CB2, 0x8DB3, 0x8EB0)
    v = machine.cpu.v

    assert v[0xA] == 0x0C | 0x0A
    assert v[0xC] == 0x0C & 0x0A
    assert v[0xD] == 0x0C ^ 0x0A
    assert v[0xE] == 0x0A


def test_add_without_carry(machine: Machine) -> None:
    run(machine, 0x6A05, 0x6B03, 0x8AB4)

    assert machine.cpu.v[0xA] == 8
    assert machine.cpu.v[0xF] == 0


def test_add_with_carry(machine: Machine) -> None:
    run(machine, 0x6AFA, 0x6B0A, 0x8AB4)

    assert machine.cpu.v[0xA] == 4
    assert machine.cpu.v[0xF] == 1


def test_sub_with_borrow(machine: Machine) -> None:
    run(machine, 0x6A03, 0x6B05, 0x8AB5)

    assert machine.cpu.v[0xA] == 254
    assert machine.cpu.v[0xF] == 0


def test_sub_without_borrow(machine: Machine) -> None:
    run(machine, 0x6A05, 0x6B03, 0x8AB5)

    assert machine.cpu.v[0xA] == 2
    assert machine.cpu.v[0xF] == 1


def test_sub_equal_operands_sets_no_borrow(machine: Machine) -> None:
    run(machine, 0x6A05, 0x6B05, 0x8AB5)

    assert machine.cpu.v[0xA] == 0
    assert machine.cpu.v[0xF] == 1


def test_subn(machine: Machine) -> None:
    run(machine, 0x6A03, 0x6B05, 0x8AB7)
    assert machine.cpu.v[0xA] == 2
    assert machine.cpu.v[0xF] == 1

    machine.reset()
    run(machine, 0x6A05, 0x6B03, 0x8AB7)
    assert machine.cpu.v[0xA] == 254
    assert machine.cpu.v[0xF] == 0


def test_shift_right_ignores_vy(machine: Machine) -> None:
    run(machine, 0x6A05, 0x6BFF, 0x8AB6)

    assert machine.cpu.v[0xA] == 0x02
    assert machine.cpu.v[0xF] == 1


def test_shift_left(machine: Machine) -> None:
    run(machine, 0x6A81, 0x8A0E)

    assert machine.cpu.v[0xA] == 0x02
    assert machine.cpu.v[0xF] == 1

    machine.reset()
    run(machine, 0x6A41, 0x8A0E)
    assert machine.cpu.v[0xA] == 0x82
    assert machine.cpu.v[0xF] == 0


def test_flag_register_as_operand_keeps_flag(machine: Machine) -> None:
    run(machine, 0x6FFF, 0x6101, 0x8F14)

    assert machine.cpu.v[0xF] == 1


# ---------------------------------------------------------------------------
# Index register and memory
# ---------------------------------------------------------------------------

def test_load_index(machine: Machine) -> None:
    run(machine, 0xA123)

    assert machine.cpu.i == 0x123


def test_add_to_index_without_overflow(machine: Machine) -> None:
    run(machine, 0xA100, 0x6A02, 0xFA1E)

    assert machine.cpu.i == 0x102
    assert machine.cpu.v[0xF] == 0


def test_add_to_index_with_overflow(machine: Machine) -> None:
    run(machine, 0xAFFF, 0x6A02, 0xFA1E)

    assert machine.cpu.i == 0x001
    assert machine.cpu.v[0xF] == 1


def test_font_glyph_address(machine: Machine) -> None:
    run(machine, 0x6A0B, 0xFA29)

    assert machine.cpu.i == 0xB * 5
    assert machine.mem.read_block(machine.cpu.i, 5) == FONT_SET[0xB * 5:0xB * 5 + 5]


def test_bcd(machine: Machine) -> None:
    run(machine, 0x6A9D, 0xA300, 0xFA33)

    assert machine.mem.read_block(0x300, 3) == bytes([1, 5, 7])
    assert machine.cpu.i == 0x300


def test_store_and_load_registers_round_trip(machine: Machine) -> None:
    run(
        machine,
        0x6011, 0x6122, 0x6233, 0x6344, 0xA400, 0xF355,
        0x6000, 0x6100, 0x6200, 0x6300, 0xF365,
    )

    assert machine.cpu.v[0:4] == [0x11, 0x22, 0x33, 0x44]
    assert machine.mem.read_block(0x400, 4) == bytes([0x11, 0x22, 0x33, 0x44])
    assert machine.mem[0x404] == 0
    assert machine.cpu.i == 0x400


def test_store_registers_wraps_at_end_of_memory(machine: Machine) -> None:
    run(machine, 0x60AA, 0x61BB, 0xAFFF, 0xF155)

    assert machine.mem[0xFFF] == 0xAA
    assert machine.mem[0x000] == 0xBB


# ---------------------------------------------------------------------------
# Random numbers
# ---------------------------------------------------------------------------

def test_random_is_masked_and_uses_injected_source() -> None:
    expected = random.Random(99).randint(0, 0xFF) & 0x0F
    machine = Machine(rng=random.Random(99))

    run(machine, 0xCA0F)

    assert machine.cpu.v[0xA] == expected


def test_random_is_reproducible_with_same_seed() -> None:
    program = (0xC0FF, 0xC1FF, 0xC2FF, 0xC3FF)
    a = run(Machine(rng=random.Random(5)), *program)
    b = run(Machine(rng=random.Random(5)), *program)

    assert a.cpu.v == b.cpu.v


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def test_clear_screen(machine: Machine) -> None:
    run(machine, 0xA000, 0xD005, 0x00E0)

    assert machine.frame_buffer.lit_count() == 0
    assert all(p == 0 for p in machine.frame_buffer.pixels)


def test_draw_twice_erases_and_reports_collision(machine: Machine) -> None:
    machine.load_program(assemble(0xA000, 0x6002, 0x6103, 0xD015, 0xD015))
    for _ in range(4):
        machine.step()

    fb = machine.frame_buffer
    assert machine.cpu.v[0xF] == 0
    assert fb.lit_count() == 14  # glyph "0"
    assert fb.read_pixel(2, 3) == 1
    assert fb.read_pixel(3, 4) == 0

    machine.step()

    assert machine.cpu.v[0xF] == 1
    assert fb.lit_count() == 0
    assert machine.cpu.i == 0x000


def test_draw_wraps_horizontally_and_reduces_origin(machine: Machine) -> None:
    # Top row of glyph "0" is 0xF0; x = 126 reduces to 62.
    run(machine, 0xA000, 0x607E, 0x6120, 0xD011)
    fb = machine.frame_buffer

    assert [fb.read_pixel(x, 0) for x in (62, 63, 0, 1)] == [1, 1, 1, 1]
    assert fb.read_pixel(2, 0) == 0
    assert fb.lit_count() == 4


def test_draw_wraps_vertically(machine: Machine) -> None:
    run(machine, 0xA000, 0x6000, 0x611F, 0xD012)
    fb = machine.frame_buffer

    assert fb.read_pixel(0, 31) == 1
    assert fb.read_pixel(0, 0) == 1
    assert fb.read_pixel(1, 0) == 0


# ---------------------------------------------------------------------------
# Keypad and timers
# ---------------------------------------------------------------------------

def test_skip_if_key_pressed(machine: Machine) -> None:
    machine.keypad.raise_input(5, True)
    run(machine, 0x6A05, 0xEA9E)
    assert machine.pc == 0x206

    machine.reset()
    run(machine, 0x6A05, 0xEA9E)
    assert machine.pc == 0x204


def test_skip_if_key_not_pressed(machine: Machine) -> None:
    run(machine, 0x6A05, 0xEAA1)
    assert machine.pc == 0x206

    machine.reset()
    machine.keypad.raise_input(5, True)
    run(machine, 0x6A05, 0xEAA1)
    assert machine.pc == 0x204


def test_wait_for_key_polls_until_pressed(machine: Machine) -> None:
    machine.load_program(assemble(0xF30A))

    for _ in range(3):
        machine.step()
        assert machine.pc == 0x200
        assert machine.waiting_for_key
    assert machine.cpu.v[3] == 0
    assert machine.cycle_count == 0

    machine.keypad.raise_input(Key.K7, True)
    machine.step()

    assert machine.cycle_count == 1
    assert machine.pc == 0x202
    assert machine.cpu.v[3] == 7
    assert not machine.waiting_for_key


def test_timers_set_read_and_count_down(machine: Machine) -> None:
    run(machine, 0x6A03, 0xFA15, 0xFA18)
    assert machine.delay_timer == 3
    assert machine.sound_timer == 3
    assert machine.sound_active

    for _ in range(3):
        machine.tick_timers()
    assert machine.delay_timer == 0
    assert not machine.sound_active

    machine.tick_timers()
    assert machine.delay_timer == 0
    assert machine.sound_timer == 0


def test_read_delay_timer(machine: Machine) -> None:
    machine.load_program(assemble(0x6A09, 0xFA15, 0xFB07))
    machine.step()
    machine.step()
    machine.tick_timers()
    machine.step()

    assert machine.cpu.v[0xB] == 8


def test_timers_are_not_driven_by_step(machine: Machine) -> None:
    machine.load_program(assemble(0x6A09, 0xFA15, 0x1204))
    for _ in range(50):
        machine.step()

    assert machine.delay_timer == 9


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("opcode", [0x5AB1, 0xFFFF, 0xE000, 0x0123])
def test_unknown_opcode_is_recoverable(machine: Machine, opcode: int) -> None:
    machine.load_program(assemble(opcode, 0x6A01))

    with pytest.raises(UnknownOpcode) as excinfo:
        machine.step()

    assert excinfo.value.opcode == opcode
    assert excinfo.value.address == 0x200
    assert machine.pc == 0x202
    assert not machine.machine_halt

    machine.step()
    assert machine.cpu.v[0xA] == 1


def test_fetch_past_end_of_memory(machine: Machine) -> None:
    machine.cpu.pc = 0xFFF

    with pytest.raises(InvalidAddress):
        machine.step()

    assert machine.machine_halt


def test_running_off_the_end_halts(machine: Machine) -> None:
    machine.mem[0xFFE] = 0x60
    machine.mem[0xFFF] = 0x01
    machine.cpu.pc = 0xFFE

    machine.step()
    assert machine.pc == 0x1000

    with pytest.raises(InvalidAddress):
        machine.step()


def test_random_programs_stay_in_bounds() -> None:
    source = random.Random(2024)
    for seed in range(20):
        machine = Machine(rng=random.Random(seed))
        machine.load_program(bytes(source.randrange(256) for _ in range(512)))
        for _ in range(500):
            try:
                machine.step()
            except UnknownOpcode:
                continue
            except MachineError:
                break
        cpu = machine.cpu
        assert len(machine.mem) == 4096
        assert all(0 <= r <= 0xFF for r in cpu.v)
        assert 0 <= cpu.i <= 0xFFF
        assert 0 <= cpu.sp <= 16
        assert set(machine.frame_buffer.pixels) <= {0, 1}


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

def test_snapshot_round_trip(machine: Machine) -> None:
    run(machine, 0x6A05, 0xA000, 0xD005, 0x2300)
    machine.keypad.raise_input(2, True)
    snapshot = machine.get_snapshot()

    other = Machine(rng=random.Random(0))
    other.restore_snapshot(snapshot)

    assert other.get_snapshot() == snapshot
    assert other.pc == 0x300
    assert other.cpu.sp == 1


def test_restore_snapshot_rejects_bad_sizes(machine: Machine) -> None:
    snapshot = machine.get_snapshot()
    snapshot["memory"] = bytes(10)

    with pytest.raises(ValueError):
        machine.restore_snapshot(snapshot)


def test_rejected_restore_leaves_machine_untouched(machine: Machine) -> None:
    run(machine, 0x6A05, 0x2300)
    before = machine.get_snapshot()
    snapshot = Machine(rng=random.Random(0)).get_snapshot()
    snapshot["memory"] = bytes(10)

    with pytest.raises(ValueError):
        machine.restore_snapshot(snapshot)

    assert machine.get_snapshot() == before
    assert machine.pc == 0x300
    assert machine.cpu.v[0xA] == 5
    assert machine.cpu.sp == 1


def test_rejected_cpu_snapshot_leaves_registers_untouched(machine: Machine) -> None:
    run(machine, 0x6A05)
    before = machine.get_snapshot()
    snapshot = machine.get_snapshot()
    snapshot["cpu"] = dict(snapshot["cpu"], v=[9] * 16, sp=17)

    with pytest.raises(ValueError):
        machine.restore_snapshot(snapshot)

    assert machine.get_snapshot() == before


# ---------------------------------------------------------------------------
# Per-machine collaborators
# ---------------------------------------------------------------------------

def test_default_loggers_are_per_machine() -> None:
    a = Machine(rng=random.Random(1))
    b = Machine(rng=random.Random(1))

    a.logger.level = 3

    assert a.logger is not b.logger
    assert b.logger.level == -1
