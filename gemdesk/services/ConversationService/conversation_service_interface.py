from abc import ABC, abstractmethod

from gemdesk.entities.message import MessagePayload, PlaybackState
from gemdesk.services.PlaybackService.playback_service_interface import (
    PlaybackOutcome,
)


class ConversationServiceInterface(ABC):
    @property
    @abstractmethod
    def messages(self) -> list[MessagePayload]:
        pass

    @property
    @abstractmethod
    def quoted_message(self) -> MessagePayload | None:
        pass

    @abstractmethod
    async def start(self) -> None:
        """Restore the saved conversation, or open a new one."""

    @abstractmethod
    async def new_chat(self) -> None:
        pass

    @abstractmethod
    async def load_history(self) -> bool:
        pass

    @abstractmethod
    async def clear_history(self) -> None:
        pass

    @abstractmethod
    def set_quote(self, message_id: str) -> MessagePayload:
        pass

    @abstractmethod
    def clear_quote(self) -> None:
        pass

    @abstractmethod
    def search(self, query: str) -> list[MessagePayload]:
        pass

    @abstractmethod
    async def send_message(self, text: str) -> MessagePayload:
        """Send ``text`` with the pending attachments and return the reply."""

    @abstractmethod
    async def speak(self, message_id: str) -> PlaybackOutcome:
        pass

    @abstractmethod
    def stop_speaking(self) -> None:
        pass

    @abstractmethod
    def playback_state(self, message_id: str) -> PlaybackState:
        pass

    @abstractmethod
    async def aclose(self) -> None:
        pass
