"""
Input handler for chip8vm.
Maps keyboard keys to the sixteen CHIP-8 keypad keys.

Keyboard layout
---------------

The left-hand 4x4 block of a QWERTY keyboard stands in for the COSMAC VIP
hex keypad:

=================  =================
Keyboard           Keypad
=================  =================
1  2  3  4         1  2  3  C
Q  W  E  R         4  5  6  D
A  S  D  F         7  8  9  E
Z  X  C  V         A  0  B  F
=================  =================

Host keys
---------

===========  ==========================
Key          Action
===========  ==========================
Escape       Quit
P            Pause / resume
F1           Reset and reload the ROM
===========  ==========================
"""

from __future__ import annotations

import logging

import pygame

from chip8vm.core.types import Key

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keyboard -> keypad mapping
# ---------------------------------------------------------------------------

_KEY_MAP: dict[int, Key] = {
    pygame.K_1: Key.K1, pygame.K_2: Key.K2, pygame.K_3: Key.K3, pygame.K_4: Key.KC,
    pygame.K_q: Key.K4, pygame.K_w: Key.K5, pygame.K_e: Key.K6, pygame.K_r: Key.KD,
    pygame.K_a: Key.K7, pygame.K_s: Key.K8, pygame.K_d: Key.K9, pygame.K_f: Key.KE,
    pygame.K_z: Key.KA, pygame.K_x: Key.K0, pygame.K_c: Key.KB, pygame.K_v: Key.KF,
}


class InputHandler:
    """Translates pygame keyboard events into keypad state.

    Parameters
    ----------
    machine:
        The emulated machine.  Expected interface:

        * ``keypad.raise_input(key: int, down: bool)``
    """

    def __init__(self, machine: object) -> None:
        self._machine = machine
        self._quit_requested: bool = False
        self._pause_requested: bool = False
        self._reset_requested: bool = False

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def quit_requested(self) -> bool:
        """``True`` if the user pressed Escape or closed the window."""
        return self._quit_requested

    def take_pause_request(self) -> bool:
        """Return and clear the pending pause-toggle request."""
        requested = self._pause_requested
        self._pause_requested = False
        return requested

    def take_reset_request(self) -> bool:
        """Return and clear the pending reset request."""
        requested = self._reset_requested
        self._reset_requested = False
        return requested

    def poll(self) -> None:
        """Pump the pygame event queue and process all pending events.

        This should be called once at the top of each frame.
        """
        for event in pygame.event.get():
            self.handle_event(event)

    def handle_event(self, event: pygame.event.Event) -> None:
        """Process a single pygame event."""
        if event.type == pygame.QUIT:
            self._quit_requested = True
        elif event.type == pygame.KEYDOWN:
            self._on_key_down(event)
        elif event.type == pygame.KEYUP:
            self._on_key_up(event)
        elif event.type == pygame.WINDOWFOCUSLOST:
            self.clear_all()

    def clear_all(self) -> None:
        """Release all currently-held keys."""
        self._machine.keypad.clear_all_input()  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Keyboard handlers
    # ------------------------------------------------------------------

    def _on_key_down(self, event: pygame.event.Event) -> None:
        key = event.key

        if key == pygame.K_ESCAPE:
            self._quit_requested = True
            return
        if key == pygame.K_p:
            self._pause_requested = True
            return
        if key == pygame.K_F1:
            self._reset_requested = True
            return

        mapped = _KEY_MAP.get(key)
        if mapped is not None:
            logger.debug("Key %X down", mapped)
            self._send(mapped, True)

    def _on_key_up(self, event: pygame.event.Event) -> None:
        mapped = _KEY_MAP.get(event.key)
        if mapped is not None:
            self._send(mapped, False)

    # ------------------------------------------------------------------
    # Machine bridge
    # ------------------------------------------------------------------

    def _send(self, key: Key, down: bool) -> None:
        self._machine.keypad.raise_input(int(key), down)  # type: ignore[attr-defined]
