"""
Logging infrastructure for the CHIP-8 core.

The core never configures logging itself.  A machine is handed an
:class:`ILogger` at construction; without one it gets its own
:class:`NullLogger`, which discards everything.  Hosts that already
use the :mod:`logging` package can pass a :class:`PythonLogger` to route
core diagnostics there.

Levels are small integers: lower is more important.  A message is emitted
when ``level <= logger.level``.
"""

import logging
from abc import ABC, abstractmethod

# Conventional levels used by the core.
LEVEL_ERROR: int = 0
LEVEL_WARNING: int = 1
LEVEL_INFO: int = 2
LEVEL_TRACE: int = 3


class ILogger(ABC):
    """Logging interface with level-based filtering."""

    @property
    @abstractmethod
    def level(self) -> int: ...

    @level.setter
    @abstractmethod
    def level(self, value: int): ...

    @abstractmethod
    def log(self, level: int, message: str): ...


class NullLogger(ILogger):
    """No-op logger implementation."""

    def __init__(self, level: int = -1):
        self._level = level

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int):
        self._level = value

    def log(self, level: int, message: str):
        pass


class ConsoleLogger(ILogger):
    """Logger that prints to console."""

    def __init__(self, level: int = LEVEL_WARNING):
        self._level = level

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int):
        self._level = value

    def log(self, level: int, message: str):
        if level <= self._level:
            print(f"[CHIP8:{level}] {message}")


# Core level -> logging level.
_PY_LEVELS: dict[int, int] = {
    LEVEL_ERROR: logging.ERROR,
    LEVEL_WARNING: logging.WARNING,
    LEVEL_INFO: logging.INFO,
    LEVEL_TRACE: logging.DEBUG,
}


class PythonLogger(ILogger):
    """Forward core messages to a :mod:`logging` logger."""

    def __init__(self, name: str = "chip8vm.core", level: int = LEVEL_INFO):
        self._logger = logging.getLogger(name)
        self._level = level

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int):
        self._level = value

    def log(self, level: int, message: str):
        if level <= self._level:
            self._logger.log(_PY_LEVELS.get(level, logging.DEBUG), message)

