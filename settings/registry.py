"""
Process-wide settings slots.

Each configuration group gets one ``SettingsSlot``: a write-once cell filled
during startup and read for the rest of the process lifetime. Reading an
empty slot raises ``SettingsNotInitializedError`` rather than returning a
default, and writing a filled slot raises ``SettingsAlreadyInitializedError``.
"""

import logging
import threading
from typing import Generic, Optional, Type, TypeVar

from errors import (
    ConfigError,
    ErrorCode,
    SettingsAlreadyInitializedError,
    SettingsNotInitializedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettingsSlot(Generic[T]):
    """
    Write-once storage for one configuration group.

    Writes are serialized with a lock; reads are not, since no writer
    exists once the slot has been filled.
    """

    def __init__(self, name: str, settings_type: Type[T]):
        """
        Args:
            name: Slot name used in error messages (e.g. "SERVER")
            settings_type: The configuration group class stored in the slot
        """
        self.name = name
        self.settings_type = settings_type
        self._value: Optional[T] = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def init_once(self, value: T) -> None:
        """
        Install the resolved settings.

        Raises:
            SettingsAlreadyInitializedError: If the slot was already filled
            ConfigError: If ``value`` is not an instance of the slot's type
        """
        if not isinstance(value, self.settings_type):
            raise ConfigError(
                f"Settings slot {self.name} expects {self.settings_type.__name__}, "
                f"got {type(value).__name__}",
                ErrorCode.INVALID_CONFIG,
                {"slot": self.name}
            )

        with self._lock:
            if self._initialized:
                raise SettingsAlreadyInitializedError(
                    f"Settings slot {self.name} ({self.settings_type.__name__}) is already initialized",
                    details={"slot": self.name}
                )
            self._value = value
            self._initialized = True

        logger.debug(f"Initialized settings slot {self.name}")

    def get(self) -> T:
        """
        Return the stored settings.

        Raises:
            SettingsNotInitializedError: If ``init_once`` has not been called
        """
        if not self._initialized:
            raise SettingsNotInitializedError(
                f"Failed to get settings from the slot {self.name} "
                f"({self.settings_type.__name__}) because it is not initialized",
                details={"slot": self.name}
            )
        return self._value  # type: ignore[return-value]

    def __repr__(self) -> str:
        state = "initialized" if self._initialized else "uninitialized"
        return f"SettingsSlot({self.name!r}, {self.settings_type.__name__}, {state})"


def init_once(slot: SettingsSlot[T], value: T) -> None:
    """Install ``value`` into ``slot``. See ``SettingsSlot.init_once``."""
    slot.init_once(value)


def get(slot: SettingsSlot[T]) -> T:
    """Read ``slot``. See ``SettingsSlot.get``."""
    return slot.get()
