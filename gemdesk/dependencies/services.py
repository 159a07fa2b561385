from pathlib import Path

from google import genai

from gemdesk.bootstrap.components import Components
from gemdesk.components.audio.audio_output_interface import AudioOutputInterface
from gemdesk.components.audio.pyaudio_output import PyAudioOutput
from gemdesk.components.configuration.configuration_interface import (
    ConfigurationInterface,
)
from gemdesk.components.logger.logger_interface import LoggerInterface
from gemdesk.dependencies.repositories import (
    get_chat_repository,
    get_preferences_repository,
)
from gemdesk.services.AttachmentService.attachment_service import AttachmentService
from gemdesk.services.AttachmentService.attachment_service_interface import (
    AttachmentServiceInterface,
)
from gemdesk.services.ChatService.chat_service import ChatService
from gemdesk.services.ChatService.chat_service_interface import ChatServiceInterface
from gemdesk.services.ConsoleService.console_service import ConsoleService
from gemdesk.services.ConsoleService.console_service_interface import (
    ConsoleServiceInterface,
)
from gemdesk.services.ConversationService.conversation_service import (
    ConversationService,
)
from gemdesk.services.ConversationService.conversation_service_interface import (
    ConversationServiceInterface,
)
from gemdesk.services.PlaybackService.playback_service import PlaybackService
from gemdesk.services.PlaybackService.playback_service_interface import (
    PlaybackServiceInterface,
)
from gemdesk.services.SettingsService.settings_service import SettingsService
from gemdesk.services.SettingsService.settings_service_interface import (
    SettingsServiceInterface,
)
from gemdesk.services.SpeechRecognizerService.gemini_speech_recognizer import (
    GeminiSpeechRecognizer,
)
from gemdesk.services.SpeechRecognizerService.speech_recognizer_interface import (
    SpeechRecognizerInterface,
)
from gemdesk.services.SpeechService.gemini_speech_service import GeminiSpeechService
from gemdesk.services.SpeechService.speech_service_interface import (
    SpeechServiceInterface,
)


def get_chat_service(components: Components) -> ChatServiceInterface:
    """
    Create the ADK chat service. A ``system.prompt`` file inside the
    configuration folder takes precedence over SYSTEM_PROMPT.
    """
    configuration = components.get_component(ConfigurationInterface)

    prompt_file = Path(components.get_config_path()) / "system.prompt"
    try:
        system_prompt: str | None = prompt_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        system_prompt = configuration.get_configuration("SYSTEM_PROMPT", str, default="")

    return ChatService(
        model_name=configuration.get_configuration(
            "CHAT_MODEL_NAME", str, default="gemini-3-flash-preview"
        ),
        logger=components.get_component(LoggerInterface).get_logger("ChatService"),
        system_prompt=system_prompt or None,
        timeout_seconds=configuration.get_configuration(
            "CHAT_TIMEOUT_SECONDS", int, default=300
        ),
    )


def get_speech_service(components: Components) -> SpeechServiceInterface:
    configuration = components.get_component(ConfigurationInterface)
    return GeminiSpeechService(
        client=components.get_component(genai.Client),
        model_name=configuration.get_configuration(
            "TTS_MODEL_NAME", str, default="gemini-2.5-flash-preview-tts"
        ),
        logger=components.get_component(LoggerInterface).get_logger("SpeechService"),
        max_attempts=configuration.get_configuration(
            "SYNTHESIS_MAX_ATTEMPTS", int, default=3
        ),
    )


def get_speech_recognizer(components: Components) -> SpeechRecognizerInterface:
    configuration = components.get_component(ConfigurationInterface)
    return GeminiSpeechRecognizer(
        client=components.get_component(genai.Client),
        model_name=configuration.get_configuration(
            "TRANSCRIBE_MODEL_NAME", str, default="gemini-2.5-flash"
        ),
        logger=components.get_component(LoggerInterface).get_logger(
            "SpeechRecognizer"
        ),
    )


def get_settings_service(components: Components) -> SettingsServiceInterface:
    return SettingsService(
        preferences_repository=get_preferences_repository(components),
        logger=components.get_component(LoggerInterface).get_logger("SettingsService"),
    )


def get_attachment_service(components: Components) -> AttachmentServiceInterface:
    configuration = components.get_component(ConfigurationInterface)
    return AttachmentService(
        logger=components.get_component(LoggerInterface).get_logger(
            "AttachmentService"
        ),
        max_attachment_bytes=configuration.get_configuration(
            "MAX_ATTACHMENT_BYTES", int, default=20 * 1024 * 1024
        ),
    )


def get_playback_service(
    components: Components, settings_service: SettingsServiceInterface
) -> PlaybackServiceInterface:
    configuration = components.get_component(ConfigurationInterface)
    logger_factory = components.get_component(LoggerInterface)

    def audio_output_factory(sample_rate: int) -> AudioOutputInterface:
        return PyAudioOutput(sample_rate, logger_factory.get_logger("AudioOutput"))

    return PlaybackService(
        speech_service=get_speech_service(components),
        settings_service=settings_service,
        audio_output_factory=audio_output_factory,
        logger=logger_factory.get_logger("PlaybackService"),
        sample_rate=configuration.get_configuration(
            "OUTPUT_SAMPLE_RATE", int, default=24000
        ),
    )


def get_conversation_service(
    components: Components,
    attachment_service: AttachmentServiceInterface,
    settings_service: SettingsServiceInterface,
) -> ConversationServiceInterface:
    return ConversationService(
        chat_service=get_chat_service(components),
        attachment_service=attachment_service,
        playback_service=get_playback_service(components, settings_service),
        settings_service=settings_service,
        chat_repository=get_chat_repository(components),
        logger=components.get_component(LoggerInterface).get_logger(
            "ConversationService"
        ),
    )


def get_console_service(components: Components) -> ConsoleServiceInterface:
    settings_service = get_settings_service(components)
    attachment_service = get_attachment_service(components)

    return ConsoleService(
        conversation=get_conversation_service(
            components, attachment_service, settings_service
        ),
        attachment_service=attachment_service,
        settings_service=settings_service,
        speech_recognizer=get_speech_recognizer(components),
        logger=components.get_component(LoggerInterface).get_logger("ConsoleService"),
    )
