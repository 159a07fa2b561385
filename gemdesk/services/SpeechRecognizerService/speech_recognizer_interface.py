from abc import ABC, abstractmethod


class SpeechRecognizerInterface(ABC):
    @property
    @abstractmethod
    def is_listening(self) -> bool:
        pass

    @abstractmethod
    async def start(self) -> None:
        """Begin capturing microphone audio."""

    @abstractmethod
    async def stop(self) -> str:
        """Stop capturing and return the transcript of what was said."""
