from abc import ABC, abstractmethod

from gemdesk.entities.message import ImageAttachment, MessagePayload


class ChatServiceError(Exception):
    """Transport or service failure with a message fit for the user."""


class ChatServiceInterface(ABC):
    @abstractmethod
    async def initialize(self, history: list[MessagePayload] | None = None) -> None:
        """Start a new conversation, optionally primed with earlier messages."""

    @abstractmethod
    async def send_message(
        self, text: str, attachments: list[ImageAttachment] | None = None
    ) -> str:
        """Send one user turn and return the model's reply text."""
