"""
Frame renderer for chip8vm.
Converts the machine's 1-bit FrameBuffer into an RGB pygame Surface.

The core stores one byte per pixel (0 or 1).  The renderer wraps that
buffer in a numpy array without copying, maps it through a two-entry
colour look-up table, and blits the result into a reusable 64x32 surface.
Scaling to the window size is left to the caller.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
import pygame

logger = logging.getLogger(__name__)

Colour = Tuple[int, int, int]

# Classic amber-on-black phosphor look.
DEFAULT_FOREGROUND: Colour = (0xFF, 0xB0, 0x00)
DEFAULT_BACKGROUND: Colour = (0x10, 0x10, 0x10)


def parse_colour(text: str) -> Colour:
    """Parse ``"RRGGBB"`` or ``"#RRGGBB"`` into an ``(r, g, b)`` tuple.

    Raises:
        ValueError: If *text* is not six hex digits.
    """
    value = text.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Colour must be six hex digits, got {text!r}")
    rgb = int(value, 16)
    return ((rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF)


class FrameRenderer:
    """Render a machine's framebuffer into a pygame Surface.

    Parameters
    ----------
    machine:
        The emulated machine.  Expected attribute:

        * ``frame_buffer`` -- :class:`~chip8vm.core.frame_buffer.FrameBuffer`
    foreground:
        RGB colour for lit pixels.
    background:
        RGB colour for dark pixels.
    """

    def __init__(
        self,
        machine: object,
        foreground: Colour = DEFAULT_FOREGROUND,
        background: Colour = DEFAULT_BACKGROUND,
    ) -> None:
        self._machine = machine
        fb = machine.frame_buffer  # type: ignore[attr-defined]
        self._width: int = fb.WIDTH
        self._height: int = fb.HEIGHT

        # Look-up table: pixel value (0/1) -> (R, G, B).
        self._lut = np.zeros((2, 3), dtype=np.uint8)
        self.set_colours(foreground, background)

        self._surface: pygame.Surface = pygame.Surface((self._width, self._height))

        logger.info("FrameRenderer: %dx%d", self._width, self._height)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def surface(self) -> pygame.Surface:
        """The internal pygame Surface (updated on each :meth:`render` call)."""
        return self._surface

    def set_colours(self, foreground: Colour, background: Colour) -> None:
        """Replace the two display colours."""
        self._lut[0] = background
        self._lut[1] = foreground

    def to_rgb(self) -> np.ndarray:
        """Return the current frame as an ``(H, W, 3)`` uint8 array."""
        fb = self._machine.frame_buffer  # type: ignore[attr-defined]
        frame = np.frombuffer(fb.pixels, dtype=np.uint8).reshape(
            (self._height, self._width)
        )
        return self._lut[frame]

    def render(self) -> pygame.Surface:
        """Render the current frame and return the surface.

        The same :class:`pygame.Surface` object is reused each frame.
        """
        rgb = self.to_rgb()
        # pygame surfarray expects (W, H, 3).
        pygame.surfarray.blit_array(self._surface, rgb.transpose(1, 0, 2))
        return self._surface
