"""
dynvol Loader Handle

One handle is returned per load request. It owns the constructed volume
through an OwnedSlot until decache() takes it out and destroys it.
"""

from concurrent.futures import Future
from typing import Generic, Optional, TypeVar

from .utils.logging_config import get_logger
from .volume import StreamingVolume

logger = get_logger("handle")

T = TypeVar("T")


class OwnedSlot(Generic[T]):
    """Holds at most one value that can be taken out exactly once"""

    def __init__(self, value: Optional[T] = None):
        self._value = value

    @property
    def is_empty(self) -> bool:
        return self._value is None

    def peek(self) -> Optional[T]:
        return self._value

    def take(self) -> Optional[T]:
        """Remove and return the value; None if already taken"""
        value, self._value = self._value, None
        return value


class VolumeLoadHandle:
    """
    Control handle for one streaming volume

    Attributes:
        promise: Future already resolved to the constructed (not yet
            loaded) volume
    """

    def __init__(self, volume: StreamingVolume):
        self._slot: OwnedSlot[StreamingVolume] = OwnedSlot(volume)
        self._cancelled = False
        self.promise: Future = Future()
        self.promise.set_result(volume)

    @property
    def volume(self) -> Optional[StreamingVolume]:
        """The owned volume, or None after decache()"""
        return self._slot.peek()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_decached(self) -> bool:
        return self._slot.is_empty

    def cancel(self) -> None:
        """Forward cancellation to the volume; safe to call repeatedly"""
        volume = self._slot.peek()
        self._cancelled = True
        if volume is not None:
            volume.cancel_loading()

    def decache(self) -> None:
        """Destroy the volume and drop the handle's reference"""
        volume = self._slot.take()
        if volume is None:
            logger.debug("decache() called on an already decached handle")
            return
        volume.destroy()
