"""
Keypad -- state of the sixteen CHIP-8 keys.

Host code (the input collaborator) writes key states through
:meth:`Keypad.raise_input`; the CPU only ever reads them, through
:meth:`Keypad.is_pressed` (EX9E / EXA1) and :meth:`Keypad.first_pressed`
(FX0A).
"""

from __future__ import annotations

from typing import Optional

from chip8vm.core.types import Key

KEY_COUNT: int = 16


class Keypad:
    """Sixteen independent boolean key states, indexed 0x0..0xF."""

    def __init__(self) -> None:
        self._state: list[bool] = [False] * KEY_COUNT

    # ------------------------------------------------------------------
    # Host-side input event injection
    # ------------------------------------------------------------------

    def raise_input(self, key: int, down: bool) -> None:
        """Mark *key* as pressed (``down=True``) or released.

        Keys outside 0x0..0xF are ignored.
        """
        if 0 <= key < KEY_COUNT:
            self._state[key] = bool(down)

    def clear_all_input(self) -> None:
        """Release every key."""
        for i in range(KEY_COUNT):
            self._state[i] = False

    # ------------------------------------------------------------------
    # Sampling (read by the CPU)
    # ------------------------------------------------------------------

    def is_pressed(self, key: int) -> bool:
        """Return ``True`` if *key* (low nibble) is held down."""
        return self._state[key & 0xF]

    def first_pressed(self) -> Optional[Key]:
        """Return the lowest-numbered pressed key, or ``None``."""
        for i, down in enumerate(self._state):
            if down:
                return Key(i)
        return None

    def pressed_keys(self) -> list[Key]:
        """Return every key currently held, lowest first."""
        return [Key(i) for i, down in enumerate(self._state) if down]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def get_snapshot(self) -> list[bool]:
        return list(self._state)

    def check_snapshot(self, state: list[bool]) -> None:
        if len(state) != KEY_COUNT:
            raise ValueError(
                f"Snapshot size mismatch: expected {KEY_COUNT}, got {len(state)}"
            )

    def restore_snapshot(self, state: list[bool]) -> None:
        self.check_snapshot(state)
        self._state[:] = [bool(s) for s in state]

    def __repr__(self) -> str:
        held = ",".join(f"{k:X}" for k in self.pressed_keys())
        return f"Keypad(pressed=[{held}])"
