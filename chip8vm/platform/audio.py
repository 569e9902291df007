"""
Audio output device for chip8vm.
Uses pygame.mixer to sound the CHIP-8 buzzer.

The CHIP-8 has no sample-level audio: a single tone plays for as long as the
sound timer is non-zero.  This device synthesises one period of a square
wave with numpy, wraps it in a looping ``pygame.mixer.Sound``, and starts or
stops that sound from :meth:`update`, which the window calls once per frame.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pygame

logger = logging.getLogger(__name__)

_SAMPLE_RATE: int = 44100
_MIXER_BUFFER_SAMPLES: int = 512

# Buzzer pitch and loudness.
_TONE_HZ: float = 440.0
_AMPLITUDE: int = 6000


def square_wave(frequency: float, sample_rate: int, amplitude: int) -> np.ndarray:
    """Return one period of a signed 16-bit square wave.

    The period is at least two samples long; the first half is high.
    """
    period = max(2, int(round(sample_rate / frequency)))
    wave = np.full(period, -amplitude, dtype=np.int16)
    wave[: period // 2] = amplitude
    return wave


class AudioDevice:
    """Play a tone while the machine's sound timer is running.

    Parameters
    ----------
    machine:
        The emulated machine.  Expected attribute:

        * ``sound_active`` -- ``bool``
    enabled:
        Set to ``False`` to create the device in a silent / no-op mode.
    """

    def __init__(
        self,
        machine: object,
        *,
        enabled: bool = True,
        tone_hz: float = _TONE_HZ,
    ) -> None:
        self._machine = machine
        self._enabled: bool = enabled
        self._tone_hz: float = tone_hz
        self._channel: Optional[pygame.mixer.Channel] = None
        self._tone: Optional[pygame.mixer.Sound] = None
        self._playing: bool = False

        if not self._enabled:
            logger.info("AudioDevice: disabled (silent mode)")
            return

        self._init_mixer()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def playing(self) -> bool:
        return self._playing

    def update(self) -> None:
        """Start or stop the tone to match the sound timer.

        Call this once per frame, after the timers have been ticked.
        """
        if not self._enabled or self._channel is None or self._tone is None:
            return

        active = bool(getattr(self._machine, "sound_active", False))
        if active and not self._playing:
            self._channel.play(self._tone, loops=-1)
            self._playing = True
        elif not active and self._playing:
            self._channel.stop()
            self._playing = False

    def shutdown(self) -> None:
        """Stop playback and release the mixer."""
        self._shutdown_mixer()

    # ------------------------------------------------------------------
    # Volume control
    # ------------------------------------------------------------------

    def get_volume(self) -> float:
        """Return the current volume (0.0 .. 1.0)."""
        if self._channel is not None:
            return self._channel.get_volume()
        return 1.0

    def set_volume(self, volume: float) -> None:
        """Set the playback volume (0.0 = mute, 1.0 = full)."""
        volume = max(0.0, min(1.0, volume))
        if self._channel is not None:
            self._channel.set_volume(volume)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _init_mixer(self) -> None:
        """Initialise the pygame mixer and build the tone."""
        try:
            pygame.mixer.quit()
            pygame.mixer.init(
                frequency=_SAMPLE_RATE,
                size=-16,       # signed 16-bit
                channels=1,     # mono
                buffer=_MIXER_BUFFER_SAMPLES,
            )
        except pygame.error as exc:
            logger.error("AudioDevice: mixer init failed: %s", exc)
            self._enabled = False
            return

        actual_freq, _, actual_channels = pygame.mixer.get_init()
        wave = square_wave(self._tone_hz, actual_freq, _AMPLITUDE)
        if actual_channels > 1:
            wave = np.repeat(wave[:, np.newaxis], actual_channels, axis=1)
        self._tone = pygame.mixer.Sound(buffer=wave.tobytes())

        pygame.mixer.set_num_channels(1)
        self._channel = pygame.mixer.Channel(0)

        logger.info(
            "AudioDevice: mixer ready at %d Hz, %d ch (tone %.0f Hz)",
            actual_freq,
            actual_channels,
            self._tone_hz,
        )

    def _shutdown_mixer(self) -> None:
        """Stop the mixer channel and release resources."""
        if self._channel is not None:
            try:
                self._channel.stop()
            except pygame.error:
                logger.debug("AudioDevice: channel already stopped")
            self._channel = None
        self._tone = None
        self._playing = False

        try:
            pygame.mixer.quit()
        except pygame.error:
            logger.debug("AudioDevice: mixer already closed")
