from abc import ABC, abstractmethod

from gemdesk.entities.message import TTSVoice


class SpeechServiceError(Exception):
    """Raised when the synthesis request itself fails."""


class SpeechServiceInterface(ABC):
    @abstractmethod
    async def synthesize(self, text: str, voice: TTSVoice) -> str | None:
        """
        Return base64 encoded PCM16 audio for ``text`` spoken by ``voice``.

        ``None`` means the service answered without audio.
        """
