import logging
import math

from gemdesk.entities.message import TTSVoice
from gemdesk.repositories.preferences_repository.preferences_repository_interface import (
    PreferencesRepositoryInterface,
)
from gemdesk.services.SettingsService.settings_service_interface import (
    SettingsServiceInterface,
)

MIN_TTS_SPEED = 0.5
MAX_TTS_SPEED = 2.0
TTS_SPEED_STEP = 0.1
DEFAULT_TTS_SPEED = 1.0
DEFAULT_VOICE = TTSVoice.KORE

TTS_SPEED_KEY = "tts_speed"
TTS_VOICE_KEY = "tts_voice"
AUTO_SPEAK_KEY = "auto_speak"


class InvalidSettingError(ValueError):
    """Raised when a preference value is out of range or unknown."""


def validate_tts_speed(speed: float) -> float:
    """Return ``speed`` rounded to the 0.1 grid, rejecting anything outside [0.5, 2.0]."""
    try:
        value = float(speed)
    except (TypeError, ValueError) as exc:
        raise InvalidSettingError(f"Speed must be a number, got {speed!r}") from exc

    if not math.isfinite(value):
        raise InvalidSettingError(f"Speed must be a finite number, got {speed!r}")

    steps = round(value / TTS_SPEED_STEP)
    if abs(steps * TTS_SPEED_STEP - value) > 1e-9:
        raise InvalidSettingError(
            f"Speed must be a multiple of {TTS_SPEED_STEP}, got {value}"
        )

    snapped = round(steps * TTS_SPEED_STEP, 1)
    if not MIN_TTS_SPEED <= snapped <= MAX_TTS_SPEED:
        raise InvalidSettingError(
            f"Speed must be between {MIN_TTS_SPEED} and {MAX_TTS_SPEED}, got {value}"
        )
    return snapped


def validate_voice(voice: str | TTSVoice) -> TTSVoice:
    if isinstance(voice, TTSVoice):
        return voice
    for candidate in TTSVoice:
        if candidate.value.lower() == str(voice).strip().lower():
            return candidate
    names = ", ".join(v.value for v in TTSVoice)
    raise InvalidSettingError(f"Unknown voice {voice!r}. Choose one of: {names}")


class SettingsService(SettingsServiceInterface):
    def __init__(
        self,
        preferences_repository: PreferencesRepositoryInterface,
        logger: logging.Logger,
        default_voice: TTSVoice = DEFAULT_VOICE,
        default_tts_speed: float = DEFAULT_TTS_SPEED,
    ):
        self.preferences_repository = preferences_repository
        self.logger = logger
        self.default_voice = default_voice
        self.default_tts_speed = default_tts_speed

    def get_tts_speed(self) -> float:
        stored = self.preferences_repository.get_value(TTS_SPEED_KEY)
        if stored is None:
            return self.default_tts_speed
        try:
            return validate_tts_speed(float(stored))
        except (InvalidSettingError, ValueError):
            self.logger.warning("Ignoring invalid stored speed %r", stored)
            return self.default_tts_speed

    def set_tts_speed(self, speed: float) -> float:
        value = validate_tts_speed(speed)
        self.preferences_repository.set_value(TTS_SPEED_KEY, str(value))
        self.logger.info("Speech speed set to %.1fx", value)
        return value

    def get_voice(self) -> TTSVoice:
        stored = self.preferences_repository.get_value(TTS_VOICE_KEY)
        if stored is None:
            return self.default_voice
        try:
            return validate_voice(stored)
        except InvalidSettingError:
            self.logger.warning("Ignoring invalid stored voice %r", stored)
            return self.default_voice

    def set_voice(self, voice: str | TTSVoice) -> TTSVoice:
        value = validate_voice(voice)
        self.preferences_repository.set_value(TTS_VOICE_KEY, value.value)
        self.logger.info("Voice set to %s", value.value)
        return value

    def is_auto_speak(self) -> bool:
        return self.preferences_repository.get_value(AUTO_SPEAK_KEY) == "1"

    def set_auto_speak(self, enabled: bool) -> None:
        self.preferences_repository.set_value(AUTO_SPEAK_KEY, "1" if enabled else "0")
