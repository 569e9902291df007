#!/usr/bin/env python3
"""
chip8vm -- CHIP-8 virtual machine

Main entry point.  Parses command-line arguments, creates the emulated
machine from a ROM file, and launches the pygame display window.

Usage examples::

    # Run a ROM at the default speed
    python main.py roms/pong.ch8

    # Faster CPU, bigger pixels, reproducible randomness
    python main.py roms/pong.ch8 --cpu-hz 1000 --scale 15 --seed 42

    # List ROM metadata without launching
    python main.py roms/pong.ch8 --info

    # Print a disassembly
    python main.py roms/pong.ch8 --disasm

    # Disable audio
    python main.py roms/pong.ch8 --no-audio
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from chip8vm.core.errors import MachineError, UnknownOpcode
from chip8vm.shell.frame_renderer import (
    DEFAULT_BACKGROUND,
    DEFAULT_FOREGROUND,
    parse_colour,
)
from chip8vm.shell.services.machine_factory import MachineFactory
from chip8vm.shell.services.rom_bytes_service import RomBytesService


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chip8vm",
        description=(
            "chip8vm -- CHIP-8 virtual machine.  "
            "Load a ROM file and run it in a pygame window."
        ),
    )

    parser.add_argument(
        "rom",
        help="Path to the ROM file (.ch8, .c8, .rom, .bin)",
    )

    # Speed / determinism
    parser.add_argument(
        "--cpu-hz",
        type=int,
        default=700,
        metavar="N",
        help="Instructions executed per second.  Default: 700.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random number instruction (CXNN).",
    )

    # Display
    parser.add_argument(
        "--scale", "-s",
        type=int,
        default=10,
        help="Display scale factor (1-30).  Default: 10.",
    )
    parser.add_argument(
        "--fg",
        type=parse_colour,
        default=DEFAULT_FOREGROUND,
        metavar="RRGGBB",
        help="Colour of lit pixels.",
    )
    parser.add_argument(
        "--bg",
        type=parse_colour,
        default=DEFAULT_BACKGROUND,
        metavar="RRGGBB",
        help="Colour of dark pixels.",
    )

    # Audio
    parser.add_argument(
        "--no-audio",
        action="store_true",
        default=False,
        help="Disable audio output.",
    )

    # Debugging / info
    parser.add_argument(
        "--info",
        action="store_true",
        default=False,
        help="Print ROM metadata and exit without launching the emulator.",
    )
    parser.add_argument(
        "--disasm",
        action="store_true",
        default=False,
        help="Print a disassembly of the ROM and exit.",
    )
    parser.add_argument(
        "--debug",
        type=int,
        nargs="?",
        const=60,
        default=None,
        metavar="FRAMES",
        help="Run FRAMES frames headless (default 60), print the display and exit.",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        default=False,
        help="Log every executed instruction (needs -vv).",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
    )

    return parser


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int) -> None:
    """Set up the root logger based on requested verbosity."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Info / disassembly modes
# ---------------------------------------------------------------------------

def _print_rom_info(rom_path: str) -> int:
    """Print human-readable metadata for a ROM."""
    try:
        info = RomBytesService.describe(rom_path)
    except (OSError, MachineError) as exc:
        print(f"Error reading ROM: {exc}", file=sys.stderr)
        return 1

    print("chip8vm ROM Information")
    print("=" * 40)
    for key, value in info.items():
        label = key.replace("_", " ").title()
        print(f"  {label:20s}: {value}")
    print("=" * 40)
    return 0


def _print_disassembly(rom_path: str) -> int:
    """Print one line per instruction word."""
    try:
        lines = RomBytesService.disassemble(rom_path)
    except (OSError, MachineError) as exc:
        print(f"Error reading ROM: {exc}", file=sys.stderr)
        return 1
    for line in lines:
        print(line)
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def _run_debug(machine, frames: int, cpu_hz: int) -> int:
    """Run a number of frames without a window and print diagnostics."""
    print("=" * 64)
    print("chip8vm Debug Diagnostics")
    print("=" * 64)
    print(f"Machine: {machine}")

    steps_per_frame = max(1, cpu_hz // 60)
    unknown = 0
    for _ in range(frames):
        for _ in range(steps_per_frame):
            if machine.machine_halt:
                break
            try:
                machine.step()
            except UnknownOpcode:
                unknown += 1
            except MachineError as exc:
                print(f"Halted: {exc}")
                break
        machine.tick_timers()

    cpu = machine.cpu
    print(f"\nAfter {frames} frames ({machine.cycle_count} instructions):")
    print(f"  PC=${cpu.pc:03X} I=${cpu.i:03X} SP={cpu.sp} "
          f"DT={cpu.delay_timer} ST={cpu.sound_timer}")
    print("  " + " ".join(f"V{r:X}={cpu.v[r]:02X}" for r in range(16)))
    print(f"  Unknown opcodes: {unknown}  Waiting for key: {machine.waiting_for_key}")
    print(f"  Lit pixels: {machine.frame_buffer.lit_count()}")
    print()
    print(machine.frame_buffer.to_text())
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` to use ``sys.argv``.

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    logger = logging.getLogger("chip8vm.main")

    # Validate the ROM path early.
    rom_path: str = os.path.expanduser(args.rom)
    if not os.path.isfile(rom_path):
        print(f"Error: ROM file not found: {rom_path}", file=sys.stderr)
        return 1

    if args.info:
        return _print_rom_info(rom_path)
    if args.disasm:
        return _print_disassembly(rom_path)

    # Create the emulated machine.
    try:
        machine = MachineFactory.create(
            rom_path, seed=args.seed, trace=args.trace
        )
    except (OSError, MachineError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    # Kept before anything runs so F1 can reload the pristine image.
    rom_bytes = machine.mem.read_block(machine.PROGRAM_START, machine.program_size)

    if args.debug is not None:
        return _run_debug(machine, args.debug, args.cpu_hz)

    # Imported late so --info / --disasm / --debug work without a display.
    from chip8vm.platform.window import Window

    logger.info("Starting emulation ...")
    try:
        window = Window(
            machine,
            scale=args.scale,
            cpu_hz=args.cpu_hz,
            rom_bytes=rom_bytes,
            enable_audio=not args.no_audio,
            foreground=args.fg,
            background=args.bg,
        )
        window.run()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        logger.exception("Fatal error during emulation")
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1

    logger.info("Exited cleanly")
    return 0


if __name__ == "__main__":
    sys.exit(main())
