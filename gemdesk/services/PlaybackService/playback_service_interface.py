from abc import ABC, abstractmethod
from enum import Enum

from gemdesk.entities.message import PlaybackState


class PlaybackOutcome(str, Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"


class PlaybackServiceInterface(ABC):
    @property
    @abstractmethod
    def active_message_id(self) -> str | None:
        """Message that owns the current session, if any."""

    @abstractmethod
    def state_for(self, message_id: str) -> PlaybackState:
        """Playback state of ``message_id`` for highlighting."""

    @abstractmethod
    async def speak(self, message_id: str, text: str) -> PlaybackOutcome:
        """
        Read ``text`` aloud, or stop if ``message_id`` is already being read.

        Returns once the session ends: ``COMPLETED`` after natural end of
        playback, ``STOPPED`` after a stop, a toggle or a superseding request.
        """

    @abstractmethod
    def stop(self) -> None:
        """Halt the active session, if any."""

    @abstractmethod
    async def aclose(self) -> None:
        """Stop playback and close the shared audio output."""
