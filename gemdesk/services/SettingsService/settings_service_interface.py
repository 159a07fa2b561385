from abc import ABC, abstractmethod

from gemdesk.entities.message import TTSVoice


class SettingsServiceInterface(ABC):
    @abstractmethod
    def get_tts_speed(self) -> float:
        pass

    @abstractmethod
    def set_tts_speed(self, speed: float) -> float:
        pass

    @abstractmethod
    def get_voice(self) -> TTSVoice:
        pass

    @abstractmethod
    def set_voice(self, voice: str | TTSVoice) -> TTSVoice:
        pass

    @abstractmethod
    def is_auto_speak(self) -> bool:
        pass

    @abstractmethod
    def set_auto_speak(self, enabled: bool) -> None:
        pass
