"""Text-to-speech through the Gemini TTS model."""

from __future__ import annotations

import base64
import logging

from google import genai
from google.genai import errors, types
from langfuse import observe
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from gemdesk.entities.message import TTSVoice
from gemdesk.services.SpeechService.speech_service_interface import (
    SpeechServiceError,
    SpeechServiceInterface,
)


class GeminiSpeechService(SpeechServiceInterface):
    def __init__(
        self,
        client: genai.Client,
        model_name: str,
        logger: logging.Logger,
        max_attempts: int = 3,
    ) -> None:
        self.client = client
        self.model_name = model_name
        self.logger = logger
        self.max_attempts = max_attempts

    @observe()
    async def synthesize(self, text: str, voice: TTSVoice) -> str | None:
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=TTSVoice(voice).value
                    )
                )
            ),
        )
        contents = [types.Content(role="user", parts=[types.Part.from_text(text=text)])]

        self.logger.info(
            "Synthesizing %d characters with voice %s", len(text), TTSVoice(voice).value
        )

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(errors.ServerError),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential_jitter(initial=0.5, max=4),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.aio.models.generate_content(
                        model=self.model_name,
                        contents=contents,
                        config=config,
                    )
        except Exception as exc:
            self.logger.error("Error generating speech: %s", exc, exc_info=True)
            raise SpeechServiceError(str(exc)) from exc

        return self._extract_audio(response)

    def _extract_audio(self, response) -> str | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            self.logger.warning("Speech response has no candidates")
            return None

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if not data:
                continue
            if isinstance(data, bytes):
                return base64.b64encode(data).decode("ascii")
            return str(data)

        self.logger.warning("Speech response contained no audio part")
        return None
