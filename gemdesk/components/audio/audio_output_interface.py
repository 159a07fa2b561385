"""Capability interfaces for audio output, injected into the playback pipeline."""

from abc import ABC, abstractmethod
from typing import Literal

from gemdesk.utils.audio import AudioBuffer

OutputState = Literal["suspended", "running", "closed"]


class UnsupportedCapabilityError(Exception):
    """Raised when an audio capability is not available on this machine."""

    def __init__(self, capability: str, reason: str) -> None:
        self.capability = capability
        self.reason = reason
        super().__init__(f"{capability} is not available: {reason}")


class PlaybackHandleInterface(ABC):
    """One playing buffer on the shared output."""

    @abstractmethod
    async def wait(self) -> bool:
        """Wait for the end of playback. True when it ran to completion."""

    @abstractmethod
    def stop(self) -> None:
        """Halt output immediately. Calling it after completion is a no-op."""


class AudioOutputInterface(ABC):
    """A process-wide output context fixed at one sample rate."""

    sample_rate: int

    @property
    @abstractmethod
    def state(self) -> OutputState: ...

    @abstractmethod
    async def resume(self) -> None:
        """Move a suspended output to ``running``."""

    @abstractmethod
    def play(self, buffer: AudioBuffer, rate: float = 1.0) -> PlaybackHandleInterface:
        """Start playing ``buffer`` at ``rate`` and return its handle."""

    @abstractmethod
    async def close(self) -> None:
        """Release the device. The output cannot be used afterwards."""
