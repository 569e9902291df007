"""
Main application window for chip8vm.
Uses pygame to create a display, drive the emulation main loop, and
coordinate audio, video, and input subsystems.

The window is the timing driver for the machine: every 60 Hz frame it runs
``cpu_hz / 60`` instructions, ticks the timers once, updates the buzzer and
redraws the display.

Typical usage::

    from chip8vm.platform.window import Window

    machine = MachineFactory.create("pong.ch8")
    window = Window(machine, scale=10)
    window.run()
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import pygame

from chip8vm.core.errors import MachineError, UnknownOpcode
from chip8vm.core.machine import Machine
from chip8vm.platform.audio import AudioDevice
from chip8vm.platform.input_handler import InputHandler
from chip8vm.shell.frame_renderer import (
    DEFAULT_BACKGROUND,
    DEFAULT_FOREGROUND,
    Colour,
    FrameRenderer,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WINDOW_TITLE: str = "chip8vm"

# Minimum / maximum allowed display scale factors.
_MIN_SCALE: int = 1
_MAX_SCALE: int = 30

# The timers, display and frame loop all run at 60 Hz.
FRAME_HZ: int = 60

DEFAULT_CPU_HZ: int = 700


class Window:
    """Pygame window that owns the emulation main loop.

    Parameters
    ----------
    machine:
        A machine with its program already loaded.
    scale:
        Integer scale factor applied to the native 64x32 resolution.
    cpu_hz:
        Instructions executed per second.
    rom_bytes:
        The program image, kept so F1 can reset and reload it.
    enable_audio:
        Set to ``False`` to mute sound output entirely.
    """

    def __init__(
        self,
        machine: Machine,
        scale: int = 10,
        *,
        cpu_hz: int = DEFAULT_CPU_HZ,
        rom_bytes: Optional[bytes] = None,
        enable_audio: bool = True,
        foreground: Colour = DEFAULT_FOREGROUND,
        background: Colour = DEFAULT_BACKGROUND,
    ) -> None:
        # ---- basic state -------------------------------------------------
        self._machine = machine
        self._scale: int = max(_MIN_SCALE, min(_MAX_SCALE, scale))
        self._cpu_hz: int = max(1, cpu_hz)
        self._rom_bytes: Optional[bytes] = rom_bytes
        self._running: bool = False
        self._paused: bool = False

        # Fractional instruction budget carried between frames so that
        # rates not divisible by 60 are honoured on average.
        self._step_budget: float = 0.0

        # ---- init pygame display -----------------------------------------
        if not pygame.get_init():
            pygame.init()

        fb = machine.frame_buffer
        self._display_width: int = fb.WIDTH * self._scale
        self._display_height: int = fb.HEIGHT * self._scale

        self._screen: pygame.Surface = pygame.display.set_mode(
            (self._display_width, self._display_height),
            pygame.RESIZABLE,
        )
        pygame.display.set_caption(_WINDOW_TITLE)

        self._clock: pygame.time.Clock = pygame.time.Clock()

        # ---- subsystems --------------------------------------------------
        self._frame_renderer: FrameRenderer = FrameRenderer(
            machine, foreground, background
        )
        self._audio: AudioDevice = AudioDevice(machine, enabled=enable_audio)
        self._input: InputHandler = InputHandler(machine)

        # ---- performance counters ----------------------------------------
        self._frame_count: int = 0
        self._fps_update_time: float = 0.0
        self._fps_display: float = 0.0

        logger.info(
            "Window: %dx%d display (scale=%d, %d instructions/s)",
            self._display_width,
            self._display_height,
            self._scale,
            self._cpu_hz,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    @paused.setter
    def paused(self, value: bool) -> None:
        self._paused = value

    @property
    def scale(self) -> int:
        return self._scale

    @property
    def fps(self) -> float:
        """The measured frames-per-second (updated once per second)."""
        return self._fps_display

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Enter the main emulation loop.

        This method blocks until the user closes the window or presses
        Escape.  Each iteration:

        1. Polls input events and forwards them to the keypad.
        2. Runs one frame's worth of instructions and ticks the timers.
        3. Starts or stops the buzzer.
        4. Renders the framebuffer to the display.
        5. Throttles to 60 frames per second.
        """
        self._running = True
        self._fps_update_time = time.monotonic()
        self._frame_count = 0

        logger.info("Entering main loop (target %d fps)", FRAME_HZ)

        try:
            while self._running:
                self._tick()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._shutdown()

    # ------------------------------------------------------------------
    # Per-frame tick
    # ------------------------------------------------------------------

    def _tick(self) -> None:
        """Execute one iteration of the main loop."""
        # ---- input -------------------------------------------------------
        self._input.poll()
        if self._input.quit_requested:
            self._running = False
            return
        if self._input.take_pause_request():
            self._paused = not self._paused
            logger.info("Paused" if self._paused else "Resumed")
        if self._input.take_reset_request():
            self.reset_machine()

        # ---- emulation ---------------------------------------------------
        if not self._paused:
            self.run_frame()
        self._audio.update()

        # ---- video -------------------------------------------------------
        surface = self._frame_renderer.render()
        current_size = self._screen.get_size()
        scaled = pygame.transform.scale(surface, current_size)
        self._screen.blit(scaled, (0, 0))
        pygame.display.flip()

        # ---- timing ------------------------------------------------------
        self._clock.tick(FRAME_HZ)
        self._update_fps()

    def run_frame(self) -> int:
        """Run one 60 Hz frame of emulation.

        Executes this frame's share of instructions, then ticks the timers
        once.  Unknown opcodes are logged and skipped; a fatal machine error
        is logged and stops execution until the next reset.

        Returns:
            The number of instructions executed, not counting skipped
            unknown words.
        """
        machine = self._machine
        self._step_budget += self._cpu_hz / FRAME_HZ
        steps = int(self._step_budget)
        self._step_budget -= steps

        executed = 0
        for _ in range(steps):
            if machine.machine_halt:
                break
            try:
                machine.step()
            except UnknownOpcode as exc:
                logger.warning("%s", exc)
                continue
            except MachineError as exc:
                logger.error("Machine halted: %s", exc)
                break
            executed += 1

        machine.tick_timers()
        return executed

    def reset_machine(self) -> None:
        """Reset the machine and reload the program (F1)."""
        if self._rom_bytes is None:
            logger.warning("No ROM image kept; reset ignored")
            return
        self._machine.reset()
        self._machine.load_program(self._rom_bytes)
        self._step_budget = 0.0
        logger.info("Machine reset")

    # ------------------------------------------------------------------
    # FPS tracking
    # ------------------------------------------------------------------

    def _update_fps(self) -> None:
        """Update the displayed FPS counter roughly once per second."""
        self._frame_count += 1
        now = time.monotonic()
        elapsed = now - self._fps_update_time
        if elapsed >= 1.0:
            self._fps_display = self._frame_count / elapsed
            self._frame_count = 0
            self._fps_update_time = now

            state = ""
            if self._machine.machine_halt:
                state = "  [halted]"
            elif self._paused:
                state = "  [paused]"
            pygame.display.set_caption(
                f"{_WINDOW_TITLE}  [{self._fps_display:.1f} fps]{state}"
            )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def _shutdown(self) -> None:
        """Clean up all subsystems."""
        logger.info("Shutting down")
        self._audio.shutdown()
        pygame.quit()
