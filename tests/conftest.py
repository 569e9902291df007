from __future__ import annotations

import os
import random

# Headless SDL so the pygame-based tests run without a display or sound card.
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from chip8vm.core.machine import Machine


@pytest.fixture
def machine() -> Machine:
    return Machine(rng=random.Random(1234))
